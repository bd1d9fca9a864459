"""面向用户的固定回复文案。

所有错误/降级场景只返回这里的固定文本，不向用户暴露内部错误信息。
"""

from dataclasses import dataclass
from typing import Dict

from chat_relay.domain.models import GenerationOutcome, GenerationResult


DEFAULT_LOCALE = "uk"


@dataclass(frozen=True)
class Replies:
    greeting: str  # 支持 {first_name}
    history_cleared: str
    history_already_empty: str
    placeholder: str  # 支持 {prompt}
    safety_blocked: str
    unclear_response: str
    service_unavailable: str
    text_failure: str
    image_failure: str
    sticker: str
    unhandled_error: str
    default_image_caption: str

    def render_greeting(self, first_name: str) -> str:
        return self.greeting.format(first_name=first_name or "")

    def render_placeholder(self, prompt: str) -> str:
        return self.placeholder.format(prompt=prompt)

    def for_result(self, result: GenerationResult) -> str:
        """按生成结果类型选择回复：成功时原样返回模型文本。"""

        if result.ok:
            return result.text or ""
        if result.outcome is GenerationOutcome.SAFETY_BLOCKED:
            return self.safety_blocked
        if result.outcome is GenerationOutcome.MALFORMED_RESPONSE:
            return self.unclear_response
        return self.service_unavailable


REPLIES: Dict[str, Replies] = {
    "uk": Replies(
        greeting=(
            "Привіт, {first_name}! Я бот з Gemini AI.\n"
            "Я можу відповідати на запитання, аналізувати фото і пам'ятати нашу розмову.\n"
            "Використовуй /clear, щоб очистити історію чату."
        ),
        history_cleared="🧹 Історію чату очищено. Почнемо спочатку!",
        history_already_empty="Історія чату вже порожня.",
        placeholder='(API Key Missing) Запит: "{prompt}". Встановіть GEMINI_API_KEY для роботи.',
        safety_blocked="Я не можу відповісти на це, оскільки запит порушує правила безпеки. 🤷",
        unclear_response="Я не зміг згенерувати чітку відповідь, спробуйте запитати інакше.",
        service_unavailable="🤖 (Помилка) AI-сервіс зараз недоступний. Спробуйте пізніше.",
        text_failure="❌ Ой, сталася помилка. Спробуйте ще раз.",
        image_failure="❌ Ой, не вдалося обробити ваше зображення.",
        sticker="👍 Класний стікер!",
        unhandled_error="Ой! Я зіткнувся з необробленою помилкою.",
        default_image_caption="Опиши це зображення",
    ),
    "en": Replies(
        greeting=(
            "Hi, {first_name}! I'm a bot powered by Gemini AI.\n"
            "I can answer questions, analyze photos and remember our conversation.\n"
            "Use /clear to reset the chat history."
        ),
        history_cleared="🧹 Chat history cleared. Let's start over!",
        history_already_empty="Chat history is already empty.",
        placeholder='(API Key Missing) Prompt: "{prompt}". Set GEMINI_API_KEY to enable replies.',
        safety_blocked="I can't answer that because the request violates the safety rules. 🤷",
        unclear_response="I couldn't produce a clear response, please try rephrasing.",
        service_unavailable="🤖 (Error) The AI service is unavailable right now. Please try again later.",
        text_failure="❌ Oops, something went wrong. Please try again.",
        image_failure="❌ Oops, I couldn't process your image.",
        sticker="👍 Cool sticker!",
        unhandled_error="Oops! I ran into an unhandled error.",
        default_image_caption="Describe this image",
    ),
}


def get_replies(locale: str = DEFAULT_LOCALE) -> Replies:
    return REPLIES.get((locale or "").lower(), REPLIES[DEFAULT_LOCALE])
