"""
Command-line interface for settingstore.

Usage:
    settingstore get site.name
    settingstore set site.name "My Site" --group site
    settingstore list --group site
    settingstore clear-cache
    settingstore export --format yaml --file settings.yaml
    settingstore import settings.yaml --format yaml --force
    settingstore create
    settingstore generate-key

Values typed on the command line are parsed: ``true``/``false`` become
booleans, numbers become int/float and JSON arrays/objects are decoded.
"""

import argparse
import json
import logging
import re
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from settingstore.database import SessionLocal, init_db
from settingstore.schemas import ENCRYPTED_PLACEHOLDER
from settingstore.services.encryption import EncryptionError, EncryptionService
from settingstore.services.exceptions import SettingsError, SettingValidationError
from settingstore.services.settings_manager import SettingsManager

logger = logging.getLogger(__name__)

INPUT_TYPES = [
    "text", "textarea", "number", "email", "url", "tel", "password",
    "select", "checkbox", "radio", "color", "date",
]

_NUMBER = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


@contextmanager
def open_manager() -> Iterator[SettingsManager]:
    """Settings manager bound to a fresh session, closed afterwards."""
    init_db()
    db = SessionLocal()
    try:
        yield SettingsManager(db)
    finally:
        db.close()


def parse_value(raw: str) -> Any:
    """Detect the type of a value typed on the command line."""
    if raw in ("true", "false"):
        return raw == "true"
    if _NUMBER.fullmatch(raw):
        return float(raw) if any(c in raw for c in ".eE") else int(raw)
    if raw.startswith(("{", "[")):
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return raw
    return raw


def format_value(value: Any) -> str:
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _error(message: str) -> int:
    print(message, file=sys.stderr)
    return 1


def prompt(label: str, default: str | None = None, required: bool = False) -> str:
    """Ask for a line of input, re-asking while a required answer is empty."""
    suffix = f" [{default}]" if default else ""
    while True:
        answer = input(f"{label}{suffix}: ").strip()
        if not answer and default is not None:
            return default
        if answer or not required:
            return answer
        print(f"{label} is required.")


def confirm(label: str, default: bool = False) -> bool:
    hint = "Y/n" if default else "y/N"
    answer = input(f"{label} [{hint}]: ").strip().lower()
    if not answer:
        return default
    return answer in ("y", "yes")


def choose(label: str, choices: dict[str, str], default: str) -> str:
    """Pick one of ``choices`` by number or key."""
    print(label)
    keys = list(choices)
    for i, key in enumerate(keys, start=1):
        print(f"  {i}. {choices[key]}")
    answer = prompt("Choice", default=default)
    if answer.isdigit() and 1 <= int(answer) <= len(keys):
        return keys[int(answer) - 1]
    return answer if answer in choices else default


def default_label(key: str) -> str:
    """Human label from the last dotted part of a key."""
    last = key.split(".")[-1]
    return re.sub(r"[_-]", " ", last).title()


def select_group(groups: dict[str, str]) -> str | None:
    choices = {"none": "(No Group)", **groups, "custom": "+ Enter Custom Group"}
    selected = choose("Setting Group", choices, default="none")
    if selected == "custom":
        return prompt("Custom Group Name") or None
    return None if selected == "none" else selected


# Commands


def cmd_get(args, manager: SettingsManager) -> int:
    value = manager.get(args.key, args.default)
    if value is None:
        return _error(f"Setting '{args.key}' not found.")
    print(f"Setting: {args.key}")
    print(f"Value: {json.dumps(value, indent=4, ensure_ascii=False)}")
    return 0


def cmd_set(args, manager: SettingsManager) -> int:
    raw = args.value if args.value is not None else prompt("Setting Value", required=True)
    value = parse_value(raw)
    manager.set(args.key, value, args.group, args.encrypted)
    print(f"Setting '{args.key}' saved.")
    return 0


def cmd_list(args, manager: SettingsManager) -> int:
    settings = manager.store.list_ordered(args.group, public_only=args.public)
    if not settings:
        print("No settings found.")
        return 0

    rows = [("Key", "Value", "Group", "Type", "Encrypted", "Public")]
    for setting in settings:
        value = (
            ENCRYPTED_PLACEHOLDER
            if setting.encrypted
            else format_value(manager.codec.decode(setting.value, setting.type))
        )
        rows.append((
            setting.key,
            value,
            setting.group or "-",
            setting.type,
            "Yes" if setting.encrypted else "No",
            "Yes" if setting.is_public else "No",
        ))

    widths = [max(len(row[i]) for row in rows) for i in range(len(rows[0]))]
    for row in rows:
        print("  ".join(cell.ljust(width) for cell, width in zip(row, widths)).rstrip())
    print(f"Total: {len(settings)} setting(s)")
    return 0


def cmd_clear_cache(args, manager: SettingsManager) -> int:
    if not manager.config.cache_enabled:
        print("Settings cache is disabled.")
        return 0
    manager.flush()
    print("Settings cache cleared successfully.")
    return 0


def cmd_export(args, manager: SettingsManager) -> int:
    options = {
        "include_metadata": not args.no_metadata,
        "include_encrypted": args.include_encrypted,
    }
    if args.group:
        options["group"] = args.group

    exported = manager.export(args.format, options)
    if args.file:
        Path(args.file).write_text(exported, encoding="utf-8")
        print(f"Settings exported successfully to: {args.file}")
    else:
        print(exported)
    return 0


def cmd_import(args, manager: SettingsManager) -> int:
    path = Path(args.file)
    if not path.exists():
        return _error(f"File not found: {args.file}")

    if not args.force and not confirm("This will override existing settings. Continue?"):
        print("Import cancelled.")
        return 0

    count = manager.import_settings(
        path.read_text(encoding="utf-8"),
        args.format,
        {"overwrite": not args.skip_existing},
    )
    print(f"Imported {count} setting(s).")
    return 0


def _collect_metadata(key: str, config) -> dict[str, Any]:
    metadata: dict[str, Any] = {}

    if confirm("Add label?", default=True):
        if confirm("Multilingual label?", default=False):
            label = {}
            for i, locale in enumerate(config.locales):
                text = prompt(f"Label ({locale})", required=i == 0)
                if text:
                    label[locale] = text
            metadata["label"] = label
        else:
            metadata["label"] = prompt("Label", default=default_label(key))

    if confirm("Add description?", default=False):
        metadata["description"] = prompt("Description")

    input_type = choose("Input Type", {t: t.title() for t in INPUT_TYPES}, default="text")
    metadata["input_type"] = input_type
    if input_type in ("select", "radio"):
        raw = prompt('Options (JSON, e.g. {"value1": "Label 1"})')
        if raw:
            try:
                metadata["options"] = json.loads(raw)
            except json.JSONDecodeError:
                print("Options are not valid JSON, skipped.")

    if confirm("Add validation rules?", default=False):
        rules = prompt("Validation rules (e.g. required|email|max:255)")
        metadata["validation_rules"] = [r for r in rules.split("|") if r.strip()]

    metadata["is_public"] = confirm("Make this setting public?", default=False)

    order = prompt("Display order (optional)")
    if order.lstrip("-").isdigit():
        metadata["order"] = int(order)
    return metadata


def _print_summary(key: str, value: Any, group: str | None, encrypted: bool, metadata: dict) -> None:
    print()
    print("Setting Summary")
    print(f"  Key:        {key}")
    print(f"  Value:      {ENCRYPTED_PLACEHOLDER if encrypted else json.dumps(value, ensure_ascii=False)}")
    print(f"  Group:      {group or '(none)'}")
    for field in ("label", "description", "input_type", "validation_rules", "is_public", "order"):
        if field in metadata:
            print(f"  {field.replace('_', ' ').capitalize() + ':':<11} {format_value(metadata[field])}")
    print(f"  Encrypted:  {'Yes' if encrypted else 'No'}")
    print()


def cmd_create(args, manager: SettingsManager) -> int:
    """Interactive wizard creating a setting with full metadata."""
    print("Settings Creation Wizard")
    print()

    while True:
        key = prompt("Setting Key", required=True)
        if len(key) > 255:
            print("Setting key must not exceed 255 characters.")
        elif manager.store.exists(key):
            print(f"Setting '{key}' already exists. Use 'set' to update it.")
        else:
            break

    value = parse_value(prompt("Setting Value", required=True))
    with_metadata = confirm("Add metadata (labels, descriptions, validation, etc.)?", default=True)
    metadata = _collect_metadata(key, manager.config) if with_metadata else {}
    group = select_group(manager.config.groups)
    encrypted = confirm("Encrypt this value?", default=False)

    _print_summary(key, value, group, encrypted, metadata)
    if not confirm("Create this setting?", default=True):
        print("Operation cancelled.")
        return 0

    if with_metadata:
        manager.set_with_metadata(key=key, value=value, group=group, encrypted=encrypted, **metadata)
    else:
        manager.set(key, value, group, encrypted)
    print(f"Setting '{key}' has been created successfully!")
    return 0


def cmd_generate_key(args, manager: SettingsManager | None = None) -> int:
    print(EncryptionService.generate_key())
    return 0


COMMANDS = {
    "get": cmd_get,
    "set": cmd_set,
    "list": cmd_list,
    "clear-cache": cmd_clear_cache,
    "export": cmd_export,
    "import": cmd_import,
    "create": cmd_create,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="settingstore",
        description="Manage application settings",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show detailed progress",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    get = sub.add_parser("get", help="Get a setting value")
    get.add_argument("key", help="The setting key")
    get.add_argument("--default", help="Default value if setting does not exist")

    set_ = sub.add_parser("set", help="Set a setting value")
    set_.add_argument("key", help="The setting key")
    set_.add_argument("value", nargs="?", help="The value (prompted for when omitted)")
    set_.add_argument("--group", help="Setting group")
    set_.add_argument("--encrypted", action="store_true", help="Store the value encrypted")

    list_ = sub.add_parser("list", help="List all settings")
    list_.add_argument("--group", help="Filter by group")
    list_.add_argument("--public", action="store_true", help="Show only public settings")

    sub.add_parser("clear-cache", help="Clear all settings cache")

    export = sub.add_parser("export", help="Export settings to JSON or YAML")
    export.add_argument("--format", choices=["json", "yaml"], default="json")
    export.add_argument("--group", help="Export specific group only")
    export.add_argument("--file", help="Output file path")
    export.add_argument("--no-metadata", action="store_true", help="Exclude metadata")
    export.add_argument("--include-encrypted", action="store_true", help="Include encrypted settings")

    import_ = sub.add_parser("import", help="Import settings from a JSON or YAML file")
    import_.add_argument("file", help="The file to import from")
    import_.add_argument("--format", choices=["json", "yaml"], default="json")
    import_.add_argument("--force", action="store_true", help="Skip confirmation")
    import_.add_argument("--skip-existing", action="store_true", help="Leave existing keys untouched")

    sub.add_parser("create", help="Create a setting with full metadata (interactive wizard)")
    sub.add_parser("generate-key", help="Print a new ENCRYPTION_KEY")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if args.command == "generate-key":
        return cmd_generate_key(args)

    try:
        with open_manager() as manager:
            return COMMANDS[args.command](args, manager)
    except SettingValidationError as e:
        messages = [m for errors in e.errors.values() for m in errors]
        return _error("Validation failed: " + " ".join(messages))
    except (SettingsError, EncryptionError) as e:
        return _error(f"Error: {e}")
    except (EOFError, KeyboardInterrupt):
        return _error("Aborted.")
    except Exception as e:
        logger.exception(f"Command '{args.command}' failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
