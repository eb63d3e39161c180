"""意圖關鍵字表 - 正規化文字後做關鍵字包含比對（先比中先贏）"""
from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Sequence, Tuple

from foodbot.config.config_loader import dialogue_config_name, load_json_config

GREETING = "greeting"
MENU = "menu"
HELP = "help"
ORDER = "order"
CANCEL = "cancel"
CONFIRM = "confirm"
DENY = "deny"

# 等待狀態的比對順序
WAITING_INTENTS: Tuple[str, ...] = (MENU, HELP, ORDER, GREETING)
# 確認狀態：confirm 優先，否則 deny/cancel 都算取消
CONFIRMING_INTENTS: Tuple[str, ...] = (CONFIRM, DENY, CANCEL)


def normalize_text(text: str) -> str:
    """小寫、NFD 拆解後去掉變音符號、去頭尾空白"""
    t = (text or "").lower()
    t = unicodedata.normalize("NFD", t)
    t = "".join(ch for ch in t if unicodedata.category(ch) != "Mn")
    return t.strip()


def contains_words(text: str, words: Sequence[str]) -> bool:
    t = normalize_text(text)
    return any(normalize_text(w) in t for w in words)


@dataclass
class IntentTable:
    keywords: Dict[str, List[str]]
    replies: Dict[str, List[str]] = field(default_factory=dict)
    prompts: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        # 關鍵字只正規化一次
        self._normalized = {
            intent: [normalize_text(w) for w in words if normalize_text(w)]
            for intent, words in self.keywords.items()
        }

    def matches(self, normalized_text: str, intent: str) -> bool:
        return any(w in normalized_text for w in self._normalized.get(intent, []))

    def detect(self, text: str, intents: Sequence[str]) -> Optional[str]:
        t = normalize_text(text)
        for intent in intents:
            if self.matches(t, intent):
                return intent
        return None

    def prompt(self, key: str, **kwargs: Any) -> str:
        tpl = self.prompts[key]
        return tpl.format(**kwargs) if kwargs else tpl

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IntentTable":
        return cls(
            keywords={k: list(v) for k, v in (data.get("keywords") or {}).items()},
            replies={k: list(v) for k, v in (data.get("replies") or {}).items()},
            prompts=dict(data.get("prompts") or {}),
        )


def load_dialogue_config(locale: str = "es") -> IntentTable:
    data = load_json_config(dialogue_config_name(locale), required=("keywords", "prompts"))
    return IntentTable.from_dict(data)


def detect_intent(text: str, intents: Sequence[str], table: Optional[IntentTable] = None) -> Optional[str]:
    table = table or load_dialogue_config()
    return table.detect(text, intents)
