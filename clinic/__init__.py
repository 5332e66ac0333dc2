"""Clinic application for the SmartClinic backend.

This package contains the models, serializers, services, views and
route registrations behind the multi-tenant clinic portal API.
"""
