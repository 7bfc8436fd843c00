"""
Ошибки жизненного цикла заказа.

Сервисы бросают эти исключения, web-слой превращает их в HTTP-ответы
(см. `local_eats.web.lifecycle_error_handler`).
"""
from typing import Optional


class LifecycleError(Exception):
    status_code = 400
    code = "lifecycle_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class NotFound(LifecycleError):
    status_code = 404
    code = "not_found"


class ValidationFailed(LifecycleError):
    status_code = 422
    code = "validation_error"


class InvalidTransition(LifecycleError):
    status_code = 409
    code = "invalid_transition"


class ClaimConflict(LifecycleError):
    """Заказ уже забрал другой доставщик."""
    status_code = 409
    code = "already_taken"


class NotEligible(LifecycleError):
    status_code = 403
    code = "not_eligible"


class PermissionDenied(LifecycleError):
    status_code = 403
    code = "permission_denied"


class DuplicateCredit(LifecycleError):
    """Повторное зачисление в кошелёк. Наружу не отдаётся, только логируется."""
    code = "duplicate_credit"
