import json
from flask import has_request_context, request
from models import db
from models.audit_log import AuditLog


def log_event(action: str, actor=None, entity=None, entity_id=None, metadata=None):
    """
    Append an audit row. Works outside a request too (CLI, scheduler), in
    which case ip/user agent stay empty.
    """
    ip = None
    user_agent = ""
    if has_request_context():
        ip = request.headers.get("X-Forwarded-For", request.remote_addr)
        user_agent = request.headers.get("User-Agent", "")

    row = AuditLog(
        actor=actor,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        ip=ip,
        user_agent=user_agent[:255] if user_agent else None,
        metadata_json=json.dumps(metadata, default=str) if metadata else None
    )
    db.session.add(row)
    db.session.commit()
