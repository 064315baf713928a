"""
Helpers to ensure database access stays organization-scoped.
"""

from sqlalchemy.orm import Session


def _ensure_model_has_organization_id(model) -> None:
    if not hasattr(model, "organization_id"):
        name = getattr(model, "__name__", str(model))
        raise ValueError(f"{name} does not define organization_id and cannot be tenant-scoped.")


def scoped_query(db: Session, model, organization_id):
    """
    Return a query constrained to the given organization.

    Example:
        scoped_query(db, User, actor.organization_id).all()
    """
    _ensure_model_has_organization_id(model)
    return db.query(model).filter(model.organization_id == organization_id)


def get_tenant_owned(db: Session, model, organization_id, object_id, *, for_update: bool = False):
    """
    Fetch by id + organization_id, or None.

    A row in another organization is indistinguishable from a missing one.
    With ``for_update`` the row stays locked until the transaction ends.
    """
    query = scoped_query(db, model, organization_id).filter(model.id == object_id)
    if for_update:
        query = query.with_for_update()
    return query.first()
