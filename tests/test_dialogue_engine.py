import random
import re

import pytest

from foodbot.dm.dialogue_engine import (
    DialogueEngine,
    PendingOrder,
    Session,
    State,
    ORDER_ID_ALPHABET,
    ORDER_ID_LENGTH,
)
from foodbot.dm.intents import load_dialogue_config


class FirstChoice:
    """永遠選第一個，讓回覆可以精準比對"""

    def choice(self, seq):
        return seq[0]


@pytest.fixture
def table():
    return load_dialogue_config("es")


@pytest.fixture
def engine(table):
    return DialogueEngine(table, rng=FirstChoice())


# ---- WAITING ----

def test_menu_words_return_menu_reply(engine, table):
    reply, state, order = engine.handle(State.WAITING, PendingOrder(), "¿Me enseñas el MENÚ?")
    assert reply == table.replies["menu"][0]
    assert state == State.WAITING
    assert order == PendingOrder()


def test_menu_wins_over_order_words(engine, table):
    # "quiero ver" 同時有 order/menu 關鍵字，menu 先比
    reply, state, _ = engine.handle(State.WAITING, PendingOrder(), "quiero ver la carta")
    assert reply == table.replies["menu"][0]
    assert state == State.WAITING


def test_help_words_return_help_reply(engine, table):
    reply, state, _ = engine.handle(State.WAITING, PendingOrder(), "necesito ayuda")
    assert reply == table.replies["help"][0]
    assert state == State.WAITING


def test_order_words_ask_for_product(engine, table):
    reply, state, _ = engine.handle(State.WAITING, PendingOrder(), "Quiero pedir")
    assert reply == table.prompts["ask_product"]
    assert state == State.ASKING_PRODUCT


def test_greeting_stays_waiting(engine, table):
    reply, state, _ = engine.handle(State.WAITING, PendingOrder(), "Buenas tardes")
    assert reply == table.replies["greeting"][0]
    assert state == State.WAITING


def test_unmatched_input_moves_to_asking_product(engine, table):
    reply, state, _ = engine.handle(State.WAITING, PendingOrder(), "tengo hambre")
    assert reply == table.prompts["fallback"]
    assert state == State.ASKING_PRODUCT


# ---- ASKING_PRODUCT ----

@pytest.mark.parametrize("text", ["cancelar", "quiero salir", "no quiero nada", "Atrás"])
def test_cancel_from_asking_product_resets(engine, text):
    reply, state, order = engine.handle(State.ASKING_PRODUCT, PendingOrder(product="X"), text)
    assert state == State.WAITING
    assert order == PendingOrder()
    assert "Pedido cancelado" in reply


def test_product_name_is_capitalized(engine):
    reply, state, order = engine.handle(State.ASKING_PRODUCT, PendingOrder(), "  tacos MEXICANOS ")
    assert order.product == "Tacos mexicanos"
    assert state == State.ASKING_QUANTITY
    assert '"Tacos mexicanos"' in reply


def test_input_order_is_not_mutated(engine):
    before = PendingOrder()
    _, _, after = engine.handle(State.ASKING_PRODUCT, before, "pizza")
    assert before == PendingOrder()
    assert after.product == "Pizza"


# ---- ASKING_QUANTITY ----

@pytest.mark.parametrize("text,expected", [("1", 1), ("3", 3), ("50", 50), ("3 pizzas", 3)])
def test_valid_quantity_moves_to_confirming(engine, text, expected):
    reply, state, order = engine.handle(State.ASKING_QUANTITY, PendingOrder(product="Pizza"), text)
    assert state == State.CONFIRMING
    assert order == PendingOrder(product="Pizza", quantity=expected)
    assert "Producto: Pizza" in reply


@pytest.mark.parametrize("text", ["0", "-2", "abc", "dos"])
def test_invalid_quantity_reprompts(engine, table, text):
    reply, state, order = engine.handle(State.ASKING_QUANTITY, PendingOrder(product="Pizza"), text)
    assert state == State.ASKING_QUANTITY
    assert reply == table.prompts["quantity_invalid"]
    assert order.quantity == 0


def test_quantity_over_limit_asks_to_reduce(engine):
    reply, state, order = engine.handle(State.ASKING_QUANTITY, PendingOrder(product="Pizza"), "51")
    assert state == State.ASKING_QUANTITY
    assert "50 unidades" in reply
    assert order.quantity == 0


def test_very_long_number_asks_to_reduce(engine, table):
    reply, state, order = engine.handle(State.ASKING_QUANTITY, PendingOrder(product="Pizza"), "9" * 5000)
    assert state == State.ASKING_QUANTITY
    assert reply == table.prompts["quantity_too_large"].format(max_quantity=50)
    assert order.quantity == 0


@pytest.mark.parametrize("text", ["\uff13", "\u0663", "\u0969"])
def test_non_ascii_digits_are_not_quantities(engine, table, text):
    reply, state, order = engine.handle(State.ASKING_QUANTITY, PendingOrder(product="Pizza"), text)
    assert state == State.ASKING_QUANTITY
    assert reply == table.prompts["quantity_invalid"]
    assert order == PendingOrder(product="Pizza")


def test_same_invalid_quantity_twice_keeps_state(engine):
    session = Session(State.ASKING_QUANTITY, PendingOrder(product="Pizza"))
    first, session = engine.step(session, "abc")
    second, session = engine.step(session, "abc")
    assert session.state == State.ASKING_QUANTITY
    assert first == second


def test_unit_text_singular_and_plural(engine):
    one, _, _ = engine.handle(State.ASKING_QUANTITY, PendingOrder(product="Pizza"), "1")
    two, _, _ = engine.handle(State.ASKING_QUANTITY, PendingOrder(product="Pizza"), "2")
    assert "1 unidad\n" in one
    assert "2 unidades" in two


# ---- CONFIRMING ----

@pytest.mark.parametrize("text", ["si", "sí", "SÍ, claro", "ok", "confirmo"])
def test_confirm_words_confirm(engine, text):
    reply, state, order = engine.handle(State.CONFIRMING, PendingOrder("Pizza", 3), text)
    assert state == State.WAITING
    assert order == PendingOrder()
    assert "Pedido confirmado" in reply


def test_confirm_reply_has_order_id(engine):
    reply, _, _ = engine.handle(State.CONFIRMING, PendingOrder("Pizza", 3), "si")
    # FirstChoice -> 全部都是 "0"
    assert "#000000000" in reply


@pytest.mark.parametrize("text", ["no", "cancelar", "quiero cambiar"])
def test_deny_or_cancel_from_confirming_resets(engine, table, text):
    reply, state, order = engine.handle(State.CONFIRMING, PendingOrder("Pizza", 3), text)
    assert state == State.WAITING
    assert order == PendingOrder()
    assert reply == table.prompts["order_cancelled"]


def test_unclear_answer_reprompts_confirmation(engine, table):
    reply, state, order = engine.handle(State.CONFIRMING, PendingOrder("Pizza", 3), "tal vez")
    assert state == State.CONFIRMING
    assert order == PendingOrder("Pizza", 3)
    assert reply == table.prompts["confirm_reprompt"]


# ---- 全域性質 ----

@pytest.mark.parametrize("state", list(State))
@pytest.mark.parametrize("text", ["", "   ", "hola", "51", "sí", "cancelar", "🍕", "x" * 500, "9" * 5000, "-" + "9" * 5000])
def test_handle_is_total(state, text):
    engine = DialogueEngine(rng=random.Random(1))
    reply, next_state, order = engine.handle(state, PendingOrder("Pizza", 2), text)
    assert isinstance(reply, str) and reply
    assert isinstance(next_state, State)
    assert isinstance(order, PendingOrder)


@pytest.mark.parametrize("state", list(State))
def test_blank_input_does_not_transition(engine, state):
    _, next_state, order = engine.handle(state, PendingOrder("Pizza", 2), "  ")
    assert next_state == state
    assert order == PendingOrder("Pizza", 2)


def test_seeded_random_source_is_reproducible():
    a = DialogueEngine(rng=random.Random(42))
    b = DialogueEngine(rng=random.Random(42))
    for text in ["hola", "menu", "ayuda", "hola"]:
        assert a.handle(State.WAITING, PendingOrder(), text) == b.handle(State.WAITING, PendingOrder(), text)
    assert a.generate_order_id() == b.generate_order_id()


def test_order_id_format():
    engine = DialogueEngine(rng=random.Random())
    for _ in range(50):
        oid = engine.generate_order_id()
        assert len(oid) == ORDER_ID_LENGTH == 9
        assert set(oid) <= set(ORDER_ID_ALPHABET)
        assert re.fullmatch(r"[0-9A-Z]{9}", oid)


def test_full_flow_with_step():
    engine = DialogueEngine(rng=random.Random(3))
    session = Session()
    _, session = engine.step(session, "quiero pedir")
    assert session.state == State.ASKING_PRODUCT
    _, session = engine.step(session, "pizza")
    assert session == Session(State.ASKING_QUANTITY, PendingOrder("Pizza", 0))
    _, session = engine.step(session, "3")
    assert session == Session(State.CONFIRMING, PendingOrder("Pizza", 3))
    reply, session = engine.step(session, "si")
    assert session == Session()
    assert re.search(r"#[0-9A-Z]{9}", reply)
