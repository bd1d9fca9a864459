"""系统提示词加载工具。

按语言(locale) 从 prompts/<locale> 目录读取助手人设的 system instruction，
找不到对应语言时回退到英文版本。
"""

from pathlib import Path


PROMPTS_DIR = Path(__file__).resolve().parent
DEFAULT_PROMPT_LOCALE = "en"


def load_system_prompt(locale: str = DEFAULT_PROMPT_LOCALE) -> str:
    """根据语言加载系统提示词文本（去掉首尾空白）。"""

    fname = PROMPTS_DIR / locale / "assistant_system.md"
    if not fname.exists():
        fname = PROMPTS_DIR / DEFAULT_PROMPT_LOCALE / "assistant_system.md"
    return fname.read_text(encoding="utf-8").strip()
