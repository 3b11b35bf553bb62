from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .exceptions import BusinessValidationError

CENT = Decimal('0.01')
# 金额字段 max_digits=12, decimal_places=2
MAX_MONEY = Decimal('9999999999.99')


def to_bool(val):
    if isinstance(val, bool):
        return val
    if val is None:
        return None
    if isinstance(val, (int, float)):
        return bool(val)
    s = str(val).strip().lower()
    if s in ('true', '1', 'yes', 'y', 'on', 't'):
        return True
    if s in ('false', '0', 'no', 'n', 'off', 'f'):
        return False
    return None

def parse_decimal(val):
    if val is None or val == '':
        return None
    try:
        return Decimal(str(val))
    except (InvalidOperation, TypeError, ValueError):
        return None

def quantize_money(val) -> Decimal:
    """金额统一保留两位小数，四舍五入

    Raises:
        BusinessValidationError: 数值无法按分精度表示（如 1e30）
    """
    try:
        return Decimal(val).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise BusinessValidationError(f'金额超出允许范围: {val}')

def parse_money(val, label: str):
    """解析金额入参：必须是 [0, MAX_MONEY] 内的有限数字，返回两位小数"""
    amount = parse_decimal(val)
    if amount is None or not amount.is_finite():
        raise BusinessValidationError(f'{label}必须是数字')
    if amount < 0:
        raise BusinessValidationError(f'{label}不能为负数')
    if amount > MAX_MONEY:
        raise BusinessValidationError(f'{label}不能超过{MAX_MONEY}')
    return quantize_money(amount)

def parse_datetime(val):
    try:
        from django.utils.dateparse import parse_datetime as pd
        return pd(str(val))
    except (TypeError, ValueError):
        return None
