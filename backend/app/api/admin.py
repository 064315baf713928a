# Test-only provisioning. Lets end-to-end suites create organizations and
# users without going through invitations. Disabled in production.

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.errors import unwrap
from app.core.config import settings
from app.core.db import get_db
from app.core.errors import Err, ErrorKind, OperationFailed
from app.crud.organizations import provision_user
from app.schemas.admin import SeedUserCreate, SeedUserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/create-test-user", response_model=SeedUserResponse)
def create_test_user(payload: SeedUserCreate, db: Session = Depends(get_db)):
    if settings.is_production:
        logger.warning("admin.test_user_blocked", extra={"environment": settings.ENVIRONMENT})
        raise OperationFailed(Err(ErrorKind.FORBIDDEN, "Not available in production"))
    user = unwrap(
        provision_user(
            db,
            organization_name=payload.organization_name,
            email=payload.email,
            password=payload.password,
            role=payload.role,
            name=payload.name,
        )
    )
    return SeedUserResponse(user_id=user.id, organization_id=user.organization_id, role=user.role)
