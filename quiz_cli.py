import argparse
import logging
import mimetypes
import random
import sys
from dotenv import load_dotenv

import dependencies
from api.error_utils import EcoQuizError
from quiz_generator import QuestionSynthesizer
from quiz_session import QuizSession, ANSWER_OPTIONS, Phase
from tip_generator import TipProvider


def play_quiz(session, synthesizer, read_answer=None, write=print):
    """Drives one full session in the terminal. Returns the final score."""
    read_answer = read_answer or input
    session.run_start(synthesizer)
    while session.phase == Phase.PRESENTING:
        question = session.current_question
        write(f"\nPregunta {session.question_index}/{session.length} | Puntuación: {session.score}")
        write(f"{question.waste_name}: ¿En qué contenedor va esto? ({' / '.join(ANSWER_OPTIONS)})")
        if session.last_error:
            write(f"(modo demo: {session.last_error})")

        while not session.answered:
            choice = read_answer("> ").strip().capitalize()
            try:
                session.answer_question(choice)
            except EcoQuizError as e:
                write(str(e))

        verdict = "¡Correcto!" if session.answer.is_correct else f"Incorrecto. Era {question.correct_container}."
        write(f"{verdict} {question.justification}")
        session.run_continue(synthesizer)

    write(f"\nQuiz terminado. Puntuación final: {session.score}/{session.length}")
    return session.score


def _install_seeded_services(seed):
    """Replace the quiz and tip services with ones whose fallback choices are reproducible."""
    rng = random.Random(seed)
    groq_client = dependencies.groq_client_or_none()
    dependencies.override("tip_provider", TipProvider(
        groq_client, model=dependencies.GROQ_MODEL, temperature=dependencies.TIP_TEMPERATURE, rng=rng))
    dependencies.override("question_synthesizer", QuestionSynthesizer(
        groq_client, dependencies.get_image_generator(), model=dependencies.GROQ_MODEL,
        temperature=dependencies.QUIZ_TEMPERATURE, rng=rng))


def main(argv=None):
    load_dotenv()
    logging.basicConfig(level=logging.WARNING, format='%(asctime)s - %(levelname)s - %(message)s')

    parser = argparse.ArgumentParser(description='Play the EcoQuiz recycling quiz from the terminal.')
    parser.add_argument('--seed', type=int, default=None, help='Seed for fallback item/tip selection.')
    parser.add_argument('--tip', action='store_true', help='Print one recycling tip and exit.')
    parser.add_argument('--classify', metavar='IMAGE', help='Classify a local photo and exit.')
    args = parser.parse_args(argv)

    try:
        if args.seed is not None:
            _install_seeded_services(args.seed)

        if args.tip:
            print(dependencies.get_tip_provider().next_tip().text)
            return 0

        if args.classify:
            mime_type = mimetypes.guess_type(args.classify)[0] or 'image/jpeg'
            with open(args.classify, 'rb') as f:
                image_bytes = f.read()
            result = dependencies.get_classifier().classify(image_bytes, mime_type)
            print(f"{result.object_name}: {result.container.label} (confianza {result.confidence.label})")
            if result.reason:
                print(result.reason)
            return 0

        play_quiz(QuizSession(), dependencies.get_question_synthesizer())
        return 0
    except EcoQuizError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except EOFError:
        print("\nEntrada cerrada, quiz interrumpido.", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
