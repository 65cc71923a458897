from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from callrelay.core.database import get_db
from callrelay.core.deps import get_tenant_directory
from callrelay.services.tenants import TenantDirectory

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/ready")
def ready(
    db: Session = Depends(get_db),
    directory: TenantDirectory = Depends(get_tenant_directory),
):
    db.execute(text("SELECT 1"))
    return {"status": "ready", "tenants": len(directory)}
