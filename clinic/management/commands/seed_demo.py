# clinic/management/commands/seed_demo.py
from django.core.management.base import BaseCommand
from django.contrib.auth.hashers import make_password

from clinic.models import Organization, User

ORGANIZATIONS = [
    ("Riverside Clinic", "clinic"),
    ("Northgate Hospital", "hospital"),
]

# username, role, organization name (None for tenant-less roles)
DEMO_USERS = [
    ("super", "superadmin", None),
    ("admin1", "admin", "Riverside Clinic"),
    ("doctor1", "doctor", "Riverside Clinic"),
    ("admin2", "admin", "Northgate Hospital"),
    ("doctor2", "doctor", "Northgate Hospital"),
    ("patient1", "patient", None),
]


class Command(BaseCommand):
    help = "Ensure demo organizations and users exist (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--password", default="P@ssw0rd123", help="password set on every demo user")

    def handle(self, *args, **opts):
        password = make_password(opts["password"])
        orgs = {}
        for name, kind in ORGANIZATIONS:
            org, created = Organization.objects.get_or_create(name=name, defaults={"type": kind})
            if not org.is_active:
                org.is_active = True
                org.save(update_fields=["is_active", "updated_at"])
            orgs[name] = org
            self.stdout.write(self.style.SUCCESS(f"{'created' if created else 'ok'}: organization {name}"))

        for username, role, org_name in DEMO_USERS:
            org = orgs.get(org_name)
            u, created = User.objects.get_or_create(
                username=username,
                defaults={
                    "role": role,
                    "organization": org,
                    "email": f"{username}@example.com",
                    "password": password,
                    "is_active": True,
                    "is_superuser": role == "superadmin",
                    "is_staff": role == "superadmin",
                },
            )
            if not created:
                # reset password, activation, role and tenant
                u.password = password
                u.role = role
                u.organization = org
                u.is_active = True
                u.save(update_fields=["password", "role", "organization", "is_active"])
            self.stdout.write(self.style.SUCCESS(f"ok: {username} ({role})"))
        self.stdout.write(self.style.SUCCESS("All demo users ensured."))
