import logging
import random
from typing import Optional

from api.prompts import TIP_PROMPT
from models import Tip

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "openai/gpt-oss-20b"
DEFAULT_TIP = "Recuerda separar tus residuos correctamente para facilitar el reciclaje."

FALLBACK_TIPS = (
    "Lleva tu propia bolsa reutilizable al supermercado y reduce el uso de plástico.",
    "Separa tus residuos en casa: aprovechables, orgánicos y no aprovechables.",
    "Reutiliza frascos de vidrio para almacenar alimentos en lugar de comprar nuevos contenedores.",
    "Apaga las luces cuando salgas de una habitación y ahorra energía.",
    "Usa una botella reutilizable en lugar de comprar botellas de plástico desechables.",
)


class TipProvider:
    """Fetches a short recycling tip from Groq. Never raises."""

    def __init__(self, groq_client, model: str = DEFAULT_MODEL,
                 temperature: float = 0.8, rng: Optional[random.Random] = None):
        self._groq = groq_client
        self._model = model
        self._temperature = temperature
        self._rng = rng or random.Random()

    def next_tip(self) -> Tip:
        try:
            chat_completion = self._groq.chat.completions.create(
                messages=[{"role": "user", "content": TIP_PROMPT}],
                model=self._model,
                temperature=self._temperature,
            )
            text = (chat_completion.choices[0].message.content or "").strip() or DEFAULT_TIP
            logger.info(f"Tip generated: {text}")
            return Tip(text=text)
        except Exception as e:
            logger.warning(f"Groq tip generation failed, using fallback tip. Error: {e}")
            return Tip(text=self._rng.choice(FALLBACK_TIPS))
