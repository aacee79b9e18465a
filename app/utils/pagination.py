import math

from app.config.settings import MAX_PAGE_SIZE
from app.core.exceptions import ErrorMessage, ValidationError


def validate_pagination(page: int, limit: int) -> None:
    if page < 1:
        raise ValidationError(ErrorMessage.INVALID_PAGE, field="page")
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(ErrorMessage.INVALID_LIMIT.format(max=MAX_PAGE_SIZE), field="limit")


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if total else 0
