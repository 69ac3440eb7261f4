"""Message template loading and rendering."""

from pathlib import Path

import yaml

from automation.enums import NotificationType


_templates: dict | None = None


def load_templates() -> dict:
    """
    Load message templates from YAML file.

    Caches templates after first load.
    """
    global _templates
    if _templates is not None:
        return _templates

    yaml_path = Path(__file__).parent / "messages.yaml"
    with open(yaml_path, encoding="utf-8") as f:
        _templates = yaml.safe_load(f)

    return _templates


def render_message(template: str, context: dict) -> str:
    """
    Render a message template with context variables.

    Raises:
        KeyError: If a required variable is missing from context
    """
    return template.format(**context)


def get_title_and_body(
    notification_type: NotificationType, context: dict
) -> tuple[str, str]:
    """
    Get the rendered title and body for a notification type.

    Args:
        notification_type: Which template to use
        context: Variables to substitute (title, location, penalty, ...)

    Returns:
        (title, body)
    """
    template = load_templates()[notification_type.value]
    return (
        render_message(template["title"], context),
        render_message(template["body"], context),
    )
