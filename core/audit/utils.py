from core.audit.models import AuditLog


def audit(workspace_id, action, entity_type, entity_id, actor_user_id=None, data=None):
    return AuditLog.objects.create(
        workspace_id=workspace_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        actor_user_id=actor_user_id,
        data_json=data or {},
    )
