"""
Settings API routes.

JSON resource over the global settings:
- list (optionally by group / public only), show, create, update, delete
- change history of one key and restore to a recorded version

Encrypted values are never returned; they are masked in every response.
Domain errors propagate to the exception handlers registered in main.
"""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from settingstore.database import get_db
from settingstore.schemas import HistoryRead, SettingCreate, SettingRead, SettingUpdate
from settingstore.services.audit import ActorContext
from settingstore.services.exceptions import SettingNotFoundError, SettingValidationError
from settingstore.services.settings_manager import SettingsManager

router = APIRouter(tags=["settings"])


def get_manager(request: Request, db: Session = Depends(get_db)) -> SettingsManager:
    """Settings manager whose audit records carry the request's provenance."""
    return SettingsManager(db, actor=ActorContext.from_request(request))


def _find_or_404(manager: SettingsManager, key: str):
    setting = manager.find(key)
    if setting is None:
        raise SettingNotFoundError(f"Setting not found: {key}")
    return setting


@router.get("/", response_model=list[SettingRead])
def list_settings(
    group: str | None = Query(None, description="Only settings of this group"),
    public: bool = Query(False, description="Only public settings"),
    manager: SettingsManager = Depends(get_manager),
):
    """
    List settings ordered by their ``order`` column.
    """
    settings = manager.store.list_ordered(group, public_only=public)
    return [SettingRead.from_setting(s) for s in settings]


@router.get("/{key}", response_model=SettingRead)
def show_setting(key: str, manager: SettingsManager = Depends(get_manager)):
    """Get a single setting by key."""
    return SettingRead.from_setting(_find_or_404(manager, key))


@router.post("/", response_model=SettingRead, status_code=201)
def create_setting(data: SettingCreate, manager: SettingsManager = Depends(get_manager)):
    """
    Create a new setting.

    The key must not exist yet.
    """
    if manager.has(data.key):
        raise SettingValidationError({"key": ["The key has already been taken."]})

    setting = manager.set(data.key, data.value, data.group, data.encrypted)
    return SettingRead.from_setting(setting)


@router.put("/{key}", response_model=SettingRead)
def update_setting(
    key: str,
    data: SettingUpdate,
    manager: SettingsManager = Depends(get_manager),
):
    """Update the value (and optionally the group) of an existing setting."""
    _find_or_404(manager, key)
    setting = manager.set(key, data.value, data.group)
    return SettingRead.from_setting(setting)


@router.delete("/{key}")
def delete_setting(key: str, manager: SettingsManager = Depends(get_manager)):
    """Delete a setting."""
    _find_or_404(manager, key)
    manager.forget(key)
    return JSONResponse(content={"message": "Setting deleted successfully"})


@router.get("/{key}/history", response_model=list[HistoryRead])
def setting_history(
    key: str,
    limit: int = Query(50, ge=1, le=500),
    manager: SettingsManager = Depends(get_manager),
):
    """Change history of a setting, most recent first."""
    return [HistoryRead.from_history(h) for h in manager.get_history(key, limit)]


@router.post("/{key}/restore/{history_id}", response_model=SettingRead)
def restore_setting(
    key: str,
    history_id: int,
    manager: SettingsManager = Depends(get_manager),
):
    """Restore a setting to the value it had before a recorded change."""
    setting = manager.restore_to_version(key, history_id)
    return SettingRead.from_setting(setting)
