# app/models/enums/audit_action.py
import enum


class AuditAction(str, enum.Enum):
    create = "CREATE"
    update = "UPDATE"
    delete = "DELETE"
    view = "VIEW"
    download = "DOWNLOAD"
    approve = "APPROVE"
    reject = "REJECT"
    login = "LOGIN"
    logout = "LOGOUT"
    access_denied = "ACCESS_DENIED"
