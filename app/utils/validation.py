"""
Validation utilities for money amounts and identifiers
"""
import re
from decimal import Decimal, InvalidOperation

_AMOUNT_PATTERN = re.compile(r"^-?\d+(\.\d{1,2})?$")


def normalize_decimal_input(value: str) -> str:
    """
    Нормализовать ввод суммы: убрать пробелы, заменить запятую на точку

    Example:
        >>> normalize_decimal_input(" 1 000,50 ")
        "1000.50"
    """
    return value.strip().replace(" ", "").replace(",", ".")


def parse_amount(value, allow_negative: bool = False) -> Decimal:
    """
    Распарсить денежную сумму (рубли, максимум 2 знака после запятой)

    Args:
        value: Decimal / int / float / str ("100,50" тоже допустимо)
        allow_negative: Разрешить отрицательные значения

    Returns:
        Decimal

    Raises:
        ValueError: если сумма некорректна

    Example:
        >>> parse_amount("100,50")
        Decimal('100.50')
        >>> parse_amount("-1")
        ValueError: Сумма не может быть отрицательной
    """
    if isinstance(value, bool) or value is None:
        raise ValueError("Некорректная сумма")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    else:
        normalized = normalize_decimal_input(str(value))
        if not _AMOUNT_PATTERN.match(normalized):
            raise ValueError("Некорректная сумма, максимум 2 знака после запятой")
        try:
            amount = Decimal(normalized)
        except InvalidOperation:
            raise ValueError("Некорректная сумма") from None

    if not amount.is_finite():
        raise ValueError("Некорректная сумма")
    if amount.as_tuple().exponent < -2:
        raise ValueError("Максимум 2 знака после запятой")
    if amount < 0 and not allow_negative:
        raise ValueError("Сумма не может быть отрицательной")
    return amount


def is_blank(value) -> bool:
    """None, empty string, whitespace and 0 all count as a missing identifier."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, int) and not isinstance(value, bool):
        return value == 0
    return False
