"""
Jinja2 template integration.

Exposes read-only setting lookups to templates:

    {{ setting("site.name", "My Site") }}
    {{ setting_label("site.name") }}
    {{ user_setting("theme", "light") }}

and computes the settings shared with every rendered view.
"""

from typing import Any

from fastapi.templating import Jinja2Templates

from settingstore.config import Settings
from settingstore.services.settings_manager import SettingsManager
from settingstore.services.user_settings_manager import UserSettingsManager


def register_template_globals(
    templates: Jinja2Templates,
    manager: SettingsManager,
    user_manager: UserSettingsManager | None = None,
) -> None:
    """
    Install setting lookup functions as Jinja2 globals.

    Args:
        templates: Template renderer to extend
        manager: Global settings manager
        user_manager: Optional manager for the current user's settings
    """

    def setting(key: str | None = None, default: Any = None) -> Any:
        if key is None:
            return manager
        return manager.get(key, default)

    env = templates.env
    env.globals["setting"] = setting
    env.globals["setting_label"] = manager.get_label
    env.globals["setting_description"] = manager.get_description

    if user_manager is not None:

        def user_setting(key: str | None = None, default: Any = None) -> Any:
            if key is None:
                return user_manager
            return user_manager.get(key, default)

        env.globals["user_setting"] = user_setting
        env.globals["user_setting_label"] = user_manager.get_label
        env.globals["user_setting_description"] = user_manager.get_description


def shared_settings(manager: SettingsManager, config: Settings | None = None) -> dict[str, Any]:
    """
    Settings to share with every view.

    Without configured keys or groups this is every setting (only public
    ones when ``share_public_only``). Otherwise the listed keys plus the
    listed groups. Returns an empty map when sharing is disabled.
    """
    config = config or manager.config
    if not config.share_enabled:
        return {}

    public_only = config.share_public_only
    if not config.share_keys and not config.share_groups:
        return manager.all_public() if public_only else manager.all()

    shared = {key: manager.get(key) for key in config.share_keys}
    for group in config.share_groups:
        shared.update(manager.all_public(group) if public_only else manager.group(group))
    return shared
