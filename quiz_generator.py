import logging
import random
from typing import Optional
from pydantic import ValidationError

from api.parsing_utils import extract_json_object
from api.prompts import QUIZ_ITEM_PROMPT
from models import Container, QuizItem, QuizQuestion

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "openai/gpt-oss-20b"

FALLBACK_ITEMS = (
    QuizItem(
        name="Botella de plástico",
        container=Container.BLANCO.label,
        justification="Es material reciclable.",
        image_prompt="realistic photo of a crushed plastic bottle on white background",
    ),
    QuizItem(
        name="Cáscara de banano",
        container=Container.VERDE.label,
        justification="Es residuo orgánico.",
        image_prompt="realistic photo of a banana peel on white background",
    ),
    QuizItem(
        name="Lata de aluminio",
        container=Container.BLANCO.label,
        justification="Es metal reciclable.",
        image_prompt="realistic photo of an aluminum can on white background",
    ),
)


class QuestionSynthesizer:
    """
    Builds one quiz question in two stages: Groq invents a waste item, then
    Gemini draws it. The first stage falls back to FALLBACK_ITEMS on any
    problem; the second has no fallback and its errors reach the caller.
    """

    def __init__(self, groq_client, image_generator, model: str = DEFAULT_MODEL,
                 temperature: float = 0.7, rng: Optional[random.Random] = None):
        self._groq = groq_client
        self._images = image_generator
        self._model = model
        self._temperature = temperature
        self._rng = rng or random.Random()

    def generate_item(self) -> QuizItem:
        """Ask Groq for a quiz item; never raises."""
        try:
            chat_completion = self._groq.chat.completions.create(
                messages=[{"role": "user", "content": QUIZ_ITEM_PROMPT}],
                model=self._model,
                temperature=self._temperature,
            )
            raw_text = chat_completion.choices[0].message.content or "{}"
        except Exception as e:
            logger.warning(f"Groq item generation failed, using fallback pool. Error: {e}")
            return self._fallback_item()

        logger.debug(f"Raw Groq quiz item response: {raw_text}")

        data = extract_json_object(raw_text)
        if not data or not data.get("name"):
            logger.warning(f"Groq returned no usable quiz item, using fallback pool: {raw_text!r}")
            return self._fallback_item()

        try:
            return QuizItem(
                name=data.get("name"),
                container=data.get("container"),
                justification=data.get("justification") or "",
                image_prompt=data.get("imagePrompt") or data.get("name"),
            )
        except ValidationError as e:
            logger.warning(f"Groq quiz item failed validation, using fallback pool: {e.errors()}")
            return self._fallback_item()

    def _fallback_item(self) -> QuizItem:
        return self._rng.choice(FALLBACK_ITEMS)

    def next_question(self) -> QuizQuestion:
        """
        Produce a complete QuizQuestion.

        Raises:
            ImageGenerationError: Gemini answered without image data
            UpstreamError: the Gemini image call failed
        """
        item = self.generate_item()
        logger.info(f"Generating quiz image for '{item.name}'...")
        image = self._images.generate(item.image_prompt)

        question = QuizQuestion(
            image_url=image.to_data_uri(),
            waste_name=item.name,
            correct_container=item.container,
            justification=item.justification,
        )
        logger.info(f"Quiz question generated: {question.waste_name}")
        return question
