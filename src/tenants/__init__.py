"""Tenant domain — persisted governance records and collaborator interfaces."""

from ambassador.tenants.interfaces import Generator, Role, Session, TenantStore
from ambassador.tenants.models import TENANT_FILENAME, TenantRecord
from ambassador.tenants.services import TenantService
from ambassador.tenants.store import JsonTenantStore

__all__ = [
    "TENANT_FILENAME",
    "Generator",
    "JsonTenantStore",
    "Role",
    "Session",
    "TenantRecord",
    "TenantService",
    "TenantStore",
]
