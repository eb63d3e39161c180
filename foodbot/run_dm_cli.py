import logging

from foodbot.config.settings import Settings
from foodbot.dm.dialogue_engine import DialogueEngine
from foodbot.dm.dialogue_manager import DialogueManager
from foodbot.dm.intents import load_dialogue_config


def build_manager(settings: Settings) -> DialogueManager:
    engine = DialogueEngine(load_dialogue_config(settings.locale))
    return DialogueManager(engine=engine, delay_range=settings.delay_range)


def main():
    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level)

    dm = build_manager(settings)
    session_id = "dev"
    print("FoodBot CLI（輸入 exit 離開）")
    while True:
        try:
            text = input("Tú: ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break
        if text.lower() in ("exit", "quit"):
            break
        reply = dm.handle(session_id, text)
        if reply:
            print("FoodBot: " + reply)


if __name__ == "__main__":
    main()
