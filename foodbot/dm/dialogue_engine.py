from __future__ import annotations

import random
import string
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Protocol, Sequence, Tuple, TypeVar

from foodbot.dm import intents as I
from foodbot.dm.intents import IntentTable, load_dialogue_config, normalize_text
from foodbot.dm.slot_parsers import MAX_QUANTITY, format_product_name, parse_quantity

ORDER_ID_LENGTH = 9
ORDER_ID_ALPHABET = string.digits + string.ascii_uppercase

T = TypeVar("T")


class RandomSource(Protocol):
    def choice(self, seq: Sequence[T]) -> T: ...


class State(str, Enum):
    WAITING = "waiting"
    ASKING_PRODUCT = "asking_product"
    ASKING_QUANTITY = "asking_quantity"
    CONFIRMING = "confirming"


@dataclass(frozen=True)
class PendingOrder:
    product: str = ""
    quantity: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.product and self.quantity == 0


@dataclass(frozen=True)
class Session:
    state: State = State.WAITING
    order: PendingOrder = field(default_factory=PendingOrder)


class DialogueEngine:
    """
    點餐對話狀態機：
    - handle(state, order, utterance) -> (reply, next_state, order)
    - 不修改傳入的 order，一律回傳新的 PendingOrder
    - 不丟例外；無法理解的輸入就停在原狀態再問一次
    """

    def __init__(
        self,
        table: Optional[IntentTable] = None,
        rng: Optional[RandomSource] = None,
        *,
        max_quantity: int = MAX_QUANTITY,
    ):
        self.table = table or load_dialogue_config()
        self.rng = rng or random.Random()
        self.max_quantity = max_quantity

    def handle(self, state: State, order: PendingOrder, utterance: str) -> Tuple[str, State, PendingOrder]:
        text = (utterance or "").strip()

        if state == State.ASKING_PRODUCT:
            return self._handle_product(order, text)
        if state == State.ASKING_QUANTITY:
            return self._handle_quantity(order, text)
        if state == State.CONFIRMING:
            return self._handle_confirming(order, text)
        return self._handle_waiting(order, text)

    def step(self, session: Session, utterance: str) -> Tuple[str, Session]:
        reply, next_state, order = self.handle(session.state, session.order, utterance)
        return reply, Session(state=next_state, order=order)

    # ---- 各狀態 ----

    def _handle_waiting(self, order: PendingOrder, text: str) -> Tuple[str, State, PendingOrder]:
        if not text:
            return self.table.prompt("waiting_empty"), State.WAITING, order

        intent = self.table.detect(text, I.WAITING_INTENTS)
        if intent == I.ORDER:
            return self.table.prompt("ask_product"), State.ASKING_PRODUCT, order
        if intent in (I.MENU, I.HELP, I.GREETING):
            return self._random_reply(intent), State.WAITING, order

        return self.table.prompt("fallback"), State.ASKING_PRODUCT, order

    def _handle_product(self, order: PendingOrder, text: str) -> Tuple[str, State, PendingOrder]:
        if not text:
            return self.table.prompt("product_empty"), State.ASKING_PRODUCT, order

        if self.table.matches(normalize_text(text), I.CANCEL):
            return self.table.prompt("product_cancelled"), State.WAITING, PendingOrder()

        product = format_product_name(text)
        return (
            self.table.prompt("ask_quantity", product=product),
            State.ASKING_QUANTITY,
            replace(order, product=product),
        )

    def _handle_quantity(self, order: PendingOrder, text: str) -> Tuple[str, State, PendingOrder]:
        r = parse_quantity(text, max_quantity=self.max_quantity)
        if r["reason"] == "too_large":
            return (
                self.table.prompt("quantity_too_large", max_quantity=self.max_quantity),
                State.ASKING_QUANTITY,
                order,
            )
        if not r["ok"]:
            return self.table.prompt("quantity_invalid"), State.ASKING_QUANTITY, order

        qty = r["quantity"]
        unit = self.table.prompt("unit_singular" if qty == 1 else "unit_plural")
        summary = self.table.prompt("order_summary", product=order.product, quantity=qty, unit=unit)
        return summary, State.CONFIRMING, replace(order, quantity=qty)

    def _handle_confirming(self, order: PendingOrder, text: str) -> Tuple[str, State, PendingOrder]:
        intent = self.table.detect(text, I.CONFIRMING_INTENTS) if text else None

        if intent == I.CONFIRM:
            order_id = self.generate_order_id()
            return self.table.prompt("order_confirmed", order_id=order_id), State.WAITING, PendingOrder()
        if intent in (I.DENY, I.CANCEL):
            return self.table.prompt("order_cancelled"), State.WAITING, PendingOrder()

        return self.table.prompt("confirm_reprompt"), State.CONFIRMING, order

    # ---- Helpers ----

    def _random_reply(self, intent: str) -> str:
        return self.rng.choice(self.table.replies[intent])

    def generate_order_id(self) -> str:
        return "".join(self.rng.choice(ORDER_ID_ALPHABET) for _ in range(ORDER_ID_LENGTH))
