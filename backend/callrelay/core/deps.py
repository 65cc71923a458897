from fastapi import Depends, Request
from sqlalchemy.orm import Session

from callrelay.core.database import get_db
from callrelay.services.call_store import CallStore
from callrelay.services.crm_client import CRMClient
from callrelay.services.tenants import TenantDirectory


def get_tenant_directory(request: Request) -> TenantDirectory:
    return request.app.state.tenant_directory


def get_crm_client(request: Request) -> CRMClient:
    return request.app.state.crm_client


def get_call_store(db: Session = Depends(get_db)) -> CallStore:
    return CallStore(db)
