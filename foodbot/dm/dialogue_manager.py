from __future__ import annotations

import logging
import random
import time
from typing import Callable, Optional, Tuple

from foodbot.dm.dialogue_engine import DialogueEngine, Session
from foodbot.dm.session_store import InMemorySessionStore

logger = logging.getLogger(__name__)


class DialogueManager:
    """
    前端殼層：
    - 依 session_id 取出 Session，交給 DialogueEngine 跑一輪，再存回去
    - delay_range（毫秒）有設定時，先隨機停頓一下模擬「思考中」
    """

    def __init__(
        self,
        store: Optional[InMemorySessionStore] = None,
        engine: Optional[DialogueEngine] = None,
        *,
        delay_range: Optional[Tuple[int, int]] = None,
        sleep: Callable[[float], None] = time.sleep,
        delay_rng: Optional[random.Random] = None,
    ):
        self.store = store or InMemorySessionStore()
        self.engine = engine or DialogueEngine()
        self.delay_range = delay_range
        self._sleep = sleep
        self._delay_rng = delay_rng or random.Random()

    def handle(self, session_id: str, text: str) -> str:
        text = (text or "").strip()
        if not text:
            # 空白輸入直接忽略，不動 session
            return ""

        session = self.store.get(session_id)
        self._think()

        reply, new_session = self.engine.step(session, text)
        self.store.set(session_id, new_session)

        logger.debug(
            "session=%s %s -> %s order=%s",
            session_id,
            session.state.value,
            new_session.state.value,
            new_session.order,
        )
        return reply

    def session(self, session_id: str) -> Session:
        return self.store.get(session_id)

    def reset(self, session_id: str) -> None:
        self.store.clear(session_id)

    def _think(self) -> None:
        if not self.delay_range:
            return
        lo, hi = self.delay_range
        ms = self._delay_rng.randint(lo, hi)
        self._sleep(ms / 1000.0)
