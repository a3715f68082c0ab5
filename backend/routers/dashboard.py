from fastapi import APIRouter, Depends, Query

from models import User
from routers.deps import get_operations, unwrap
from services.access import views_for
from services.auth import get_current_user
from services.operations import OperationsEngine

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard/stats")
def dashboard_stats(ops: OperationsEngine = Depends(get_operations)):
    return unwrap(ops.stats())


@router.get("/notifications")
def list_notifications(
    unread: bool = Query(default=False),
    ops: OperationsEngine = Depends(get_operations),
):
    return unwrap(ops.list_notifications(unread_only=unread))


@router.post("/notifications/{notification_id}/read")
def mark_notification_read(notification_id: str, ops: OperationsEngine = Depends(get_operations)):
    return unwrap(ops.mark_notification_read(notification_id))


@router.get("/access/views")
def visible_views(current_user: User = Depends(get_current_user)):
    return {
        "role": current_user.role.value,
        "views": [view.value for view in views_for(current_user.role)],
    }
