import re
from typing import Dict, Any

MAX_QUANTITY = 50
# 超過這個位數一律當作太多，不轉 int
MAX_QUANTITY_DIGITS = 6

# 只收 ASCII 數字（全形、阿拉伯數字等一律不算）
_LEADING_INT_RE = re.compile(r"^\s*([+-]?)([0-9]+)")


def parse_quantity(text: str, *, max_quantity: int = MAX_QUANTITY) -> Dict[str, Any]:
    """
    只在「系統正在追問數量」時使用：
    - 取開頭的整數（"3 pizzas" -> 3），後面的字忽略
    - 非數字 / <=0 -> invalid
    - 超過 max_quantity -> too_large
    """
    t = (text or "").strip()

    m = _LEADING_INT_RE.match(t)
    if not m:
        return {"ok": False, "quantity": None, "reason": "invalid"}

    sign, digits = m.group(1), m.group(2).lstrip("0")

    if sign == "-" or not digits:
        return {"ok": False, "quantity": None, "reason": "invalid"}

    if len(digits) > MAX_QUANTITY_DIGITS:
        return {"ok": False, "quantity": None, "reason": "too_large"}

    v = int(digits)

    if v > max_quantity:
        return {"ok": False, "quantity": v, "reason": "too_large"}

    return {"ok": True, "quantity": v, "reason": None}


def format_product_name(text: str) -> str:
    t = (text or "").strip()
    if not t:
        return ""
    return t[0].upper() + t[1:].lower()
