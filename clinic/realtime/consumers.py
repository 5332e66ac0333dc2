import json

from channels.generic.websocket import AsyncWebsocketConsumer

from clinic.services.notifications import user_group


class NotificationsConsumer(AsyncWebsocketConsumer):
    """Per-user notification stream: ``notification`` and ``unreadCount`` frames."""

    async def connect(self):
        user = self.scope.get('user')
        if not user or not user.is_authenticated:
            await self.close(code=4401)
            return
        self.group = user_group(user.id)
        await self.channel_layer.group_add(self.group, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"event": "welcome", "userId": user.id}))

    async def disconnect(self, close_code):
        group = getattr(self, 'group', None)
        if group:
            await self.channel_layer.group_discard(group, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        # keepalive only
        if text_data == 'ping':
            await self.send('pong')

    async def notification_push(self, event):
        await self.send(json.dumps({"event": "notification", "data": event["notification"]}))

    async def notification_unread(self, event):
        await self.send(json.dumps({"event": "unreadCount", "count": event["count"]}))
