from sqlalchemy.ext.asyncio import AsyncSession
from app.models.audit.audit_models import AuditLog
from app.models.enums.audit_action import AuditAction
from app.constants.activity_templates import ACTIVITY_TEMPLATES
from app.constants.activity_codes import ActivityCode
from app.middleware.request_logging import request_client

_ACTION_PREFIXES = (
    ("CREATE_", AuditAction.create),
    ("ADD_", AuditAction.create),
    ("SEND_", AuditAction.create),
    ("SUBMIT_", AuditAction.create),
    ("DELETE_", AuditAction.delete),
    ("REMOVE_", AuditAction.delete),
    ("APPROVE_", AuditAction.approve),
    ("ACCEPT_", AuditAction.approve),
    ("REJECT_", AuditAction.reject),
    ("DOWNLOAD_", AuditAction.download),
)

_EXACT_ACTIONS = {
    ActivityCode.LOGIN: AuditAction.login,
    ActivityCode.LOGOUT: AuditAction.logout,
    ActivityCode.LOGIN_FAILED: AuditAction.login,
    ActivityCode.ACCESS_DENIED: AuditAction.access_denied,
}


def action_for(code: ActivityCode) -> AuditAction:
    if code in _EXACT_ACTIONS:
        return _EXACT_ACTIONS[code]
    for prefix, action in _ACTION_PREFIXES:
        if code.value.startswith(prefix):
            return action
    return AuditAction.update


async def emit_activity(
    db: AsyncSession,
    *,
    user_id: int | None,
    username: str,
    code: ActivityCode,
    entity_type: str | None = None,
    entity_id: int | None = None,
    changes: dict | None = None,
    metadata: dict | None = None,
    **context,
):
    template = ACTIVITY_TEMPLATES.get(code)
    if not template:
        raise ValueError(f"No activity template for code {code}")

    try:
        message = template.format(**context)
    except KeyError as e:
        raise ValueError(
            f"Missing activity context key: {e.args[0]} for {code}"
        )

    client = request_client.get()

    db.add(
        AuditLog(
            user_id=user_id,
            username_snapshot=username,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action_for(code),
            activity_code=code.value,
            message=message,
            changes=changes,
            extra_metadata=metadata,
            ip_address=client.get("ip_address"),
            user_agent=client.get("user_agent"),
        )
    )
