"""
Quiz session state machine.

A session walks through a fixed number of questions:

    IDLE -> LOADING -> PRESENTING -> (LOADING | FINISHED)

State only changes through the named transition methods. Loading a question
is split in two (`start`/`continue_` hand out a ticket, `question_ready` or
`question_failed` consume it) so a driver can perform the network round trip
in between; results carrying a stale ticket, or arriving after `close()`,
are dropped.
"""

import enum
import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Dict, Optional

from api.error_utils import InvalidInput, InvalidTransition, SessionNotFound
from models import Container, QuizQuestion

logger = logging.getLogger(__name__)

SESSION_LENGTH = 3
ANSWER_OPTIONS = tuple(c.option for c in Container)

PLACEHOLDER_QUESTION = QuizQuestion(
    image_url="https://via.placeholder.com/300?text=Error",
    waste_name="Item de prueba",
    correct_container=Container.BLANCO.label,
    justification="Modo demo",
)


class Phase(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    PRESENTING = "presenting"
    FINISHED = "finished"


@dataclass(frozen=True)
class Answer:
    selected_label: str
    is_correct: bool


def is_correct_answer(selected_label: str, correct_container: str) -> bool:
    # Options carry the bare colour ("Blanco"), questions the full label
    # ("Blanco (Aprovechables)").
    return correct_container.startswith(selected_label)


class QuizSession:

    def __init__(self, length: int = SESSION_LENGTH):
        self.length = length
        self.score = 0
        self.question_index = 0
        self.current_question: Optional[QuizQuestion] = None
        self.answer: Optional[Answer] = None
        self.phase = Phase.IDLE
        self.closed = False
        self.last_error: Optional[str] = None
        self._ticket = 0

    # --- Queries ---

    @property
    def answered(self) -> bool:
        return self.answer is not None

    @property
    def is_last_question(self) -> bool:
        return self.question_index >= self.length

    def _require_open(self):
        if self.closed:
            raise InvalidTransition("La sesión de quiz está cerrada.")

    def _require_phase(self, *phases: Phase):
        self._require_open()
        if self.phase not in phases:
            allowed = ", ".join(p.value for p in phases)
            raise InvalidTransition(f"Acción no permitida en fase '{self.phase.value}' (se esperaba: {allowed}).")

    # --- Transitions ---

    def start(self) -> int:
        """Reset the session and enter LOADING. Returns the ticket for the first question."""
        self._require_open()
        self.score = 0
        self.question_index = 0
        self.current_question = None
        self.answer = None
        self.last_error = None
        return self._begin_loading()

    def _begin_loading(self) -> int:
        self._ticket += 1
        self.phase = Phase.LOADING
        return self._ticket

    def _accepts(self, ticket: int) -> bool:
        if self.closed or self.phase != Phase.LOADING or ticket != self._ticket:
            logger.debug(f"Dropping question result for stale ticket {ticket} (current {self._ticket}, phase {self.phase.value}, closed={self.closed})")
            return False
        return True

    def _present(self, question: QuizQuestion):
        self.question_index += 1
        self.current_question = question
        self.answer = None
        self.phase = Phase.PRESENTING

    def question_ready(self, question: QuizQuestion, ticket: int) -> bool:
        """LOADING -> PRESENTING with a freshly synthesized question. Returns False if the result was dropped."""
        if not self._accepts(ticket):
            return False
        self.last_error = None
        self._present(question)
        return True

    def question_failed(self, error: Exception, ticket: int) -> bool:
        """LOADING -> PRESENTING with the built-in placeholder, so the quiz never stalls."""
        if not self._accepts(ticket):
            return False
        logger.warning(f"Question synthesis failed, presenting placeholder question: {error}")
        self.last_error = str(error) or type(error).__name__
        self._present(PLACEHOLDER_QUESTION)
        return True

    def answer_question(self, label: str) -> Answer:
        """
        Record the player's bin choice. Only the first answer to a question counts;
        later calls return it unchanged.
        """
        self._require_phase(Phase.PRESENTING)
        if label not in ANSWER_OPTIONS:
            raise InvalidInput(f"Opción inválida: {label!r}. Opciones: {', '.join(ANSWER_OPTIONS)}.")
        if self.answer is not None:
            return self.answer

        correct = is_correct_answer(label, self.current_question.correct_container)
        self.answer = Answer(selected_label=label, is_correct=correct)
        if correct:
            self.score += 1
        logger.info(f"Question {self.question_index}: answered '{label}' ({'correct' if correct else 'incorrect'}), score {self.score}")
        return self.answer

    def continue_(self) -> Optional[int]:
        """
        Leave an answered question. Returns the ticket of the next question to load,
        or None when the session just finished.
        """
        self._require_phase(Phase.PRESENTING)
        if not self.answered:
            raise InvalidTransition("Responde la pregunta antes de continuar.")
        if self.is_last_question:
            self.phase = Phase.FINISHED
            return None
        return self._begin_loading()

    def finish(self):
        self._require_phase(Phase.PRESENTING)
        if not (self.answered and self.is_last_question):
            raise InvalidTransition("El quiz solo puede terminar tras responder la última pregunta.")
        self.phase = Phase.FINISHED

    def close(self):
        """Terminate the session from any state. Results still in flight are discarded."""
        self.closed = True
        self._ticket += 1

    # --- Drivers ---

    def load(self, synthesizer, ticket: Optional[int]) -> bool:
        """Fetch a question from `synthesizer` and apply it for `ticket`."""
        if ticket is None:
            return False
        try:
            question = synthesizer.next_question()
        except Exception as e:
            return self.question_failed(e, ticket)
        return self.question_ready(question, ticket)

    def run_start(self, synthesizer) -> bool:
        return self.load(synthesizer, self.start())

    def run_continue(self, synthesizer) -> bool:
        return self.load(synthesizer, self.continue_())

    def snapshot(self) -> dict:
        """JSON-friendly view of the session for the HTTP layer."""
        return {
            "phase": self.phase.value,
            "score": self.score,
            "questionIndex": self.question_index,
            "totalQuestions": self.length,
            "question": self.current_question.to_api() if self.current_question else None,
            "answer": {
                "selected": self.answer.selected_label,
                "isCorrect": self.answer.is_correct,
            } if self.answer else None,
            "options": list(ANSWER_OPTIONS),
            "error": self.last_error,
            "closed": self.closed,
        }


class SessionStore:
    """
    In-memory registry of server-held quiz sessions. Sessions are lost on
    restart; nothing about a quiz is persisted.
    """

    def __init__(self, max_sessions: int = 1000):
        self._sessions: Dict[str, QuizSession] = {}
        self._lock = threading.Lock()
        self._max_sessions = max_sessions

    def create(self) -> tuple:
        session_id = uuid.uuid4().hex
        session = QuizSession()
        with self._lock:
            if len(self._sessions) >= self._max_sessions:
                # Dicts keep insertion order, so this evicts the oldest session.
                oldest_id = next(iter(self._sessions))
                self._sessions.pop(oldest_id).close()
                logger.warning(f"Session store full, evicted quiz session {oldest_id}")
            self._sessions[session_id] = session
        return session_id, session

    def get(self, session_id: str) -> QuizSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(f"Quiz session '{session_id}' not found.")
        return session

    def close(self, session_id: str):
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFound(f"Quiz session '{session_id}' not found.")
        session.close()

    def __len__(self):
        with self._lock:
            return len(self._sessions)
