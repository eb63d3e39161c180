"""
設定檔載入 - foodbot/config 底下的 JSON（對話關鍵字 / 回覆 / 提示語）

同一個路徑只讀一次；讀不到、不是合法 JSON、缺必要區塊都丟 ConfigError，
訊息裡帶檔名，啟動失敗時一眼看得出是哪個檔。
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).resolve().parent

_CONFIG_CACHE: Dict[Path, Dict[str, Any]] = {}


class ConfigError(Exception):
    """設定檔有問題"""

    def __init__(self, path: Path, message: str):
        self.path = path
        super().__init__(f"{path.name}: {message}")


def load_json_config(
    rel_path: str,
    *,
    required: Sequence[str] = (),
    base_dir: Optional[Path] = None,
) -> Dict[str, Any]:
    """
    讀取 JSON 設定檔

    Args:
        rel_path: 相對於 base_dir（預設 foodbot/config）的路徑
        required: 最上層必須存在、而且是物件的區塊名稱

    Raises:
        ConfigError: 檔案不存在 / 壞掉 / 缺區塊
    """
    p = ((base_dir or CONFIG_DIR) / rel_path).resolve()
    if p in _CONFIG_CACHE:
        data = _CONFIG_CACHE[p]
    else:
        data = _read(p)
        _CONFIG_CACHE[p] = data
        logger.debug("設定檔載入: %s", p)

    missing = [key for key in required if not isinstance(data.get(key), dict)]
    if missing:
        raise ConfigError(p, f"缺少區塊 {', '.join(missing)}")
    return data


def _read(p: Path) -> Dict[str, Any]:
    try:
        with open(p, "r", encoding="utf-8-sig") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(p, "找不到設定檔") from e
    except json.JSONDecodeError as e:
        raise ConfigError(p, f"JSON 格式錯誤（第 {e.lineno} 行）") from e

    if not isinstance(data, dict):
        raise ConfigError(p, "最上層必須是物件")
    return data


def dialogue_config_name(locale: str) -> str:
    # "es-MX" / "es_MX" 都對應到 dialogue_es_mx.json
    return f"dialogue_{locale.strip().lower().replace('-', '_')}.json"


def clear_cache() -> None:
    _CONFIG_CACHE.clear()
