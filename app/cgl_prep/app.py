"""
SSC CGL Daily Prep - Flask Application
JSON API serving daily AI-generated vocabulary, idioms, current affairs, GK quizzes
and sentence practice, plus per-day progress tracking.
"""
import os
from typing import Any, Callable, Dict, List

from flask import Flask, current_app, jsonify, request
from flask_cors import CORS

from .config import config
from .models import db
from .services.content_generator import (
    generate_gk_questions,
    generate_idioms,
    generate_vocabulary,
)
from .services.current_affairs import generate_gk_facts, generate_news
from .services.gemini_client import get_gemini_client
from .services.progress_tracker import TASKS, get_progress_tracker
from .services.sentence_evaluator import UNAVAILABLE_FALLBACK, get_sentence_evaluator
from .services.storage import (
    GK_FACTS,
    GK_QUESTIONS,
    IDIOMS,
    NEWS,
    PRACTICE_SESSIONS,
    VOCABULARY,
    get_storage,
)
from .utils import (
    answers_match,
    error_response,
    generate_id,
    now_iso,
    success_response,
    today_string,
)

PRACTICE_TYPES = ('vocabulary', 'idiom')


# Initialize Flask app
app = Flask(__name__)
app.config.from_object(config.get(os.getenv('FLASK_ENV', 'development'), config['default']))
app.logger.setLevel(app.config['LOG_LEVEL'])

# Initialize extensions
db.init_app(app)
CORS(app, resources={r"/api/*": {"origins": app.config['CORS_ALLOWED_ORIGINS']}})


def _json_payload() -> Dict[str, Any]:
    """The request body as a dict; anything but a JSON object reads as empty."""
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _serve_daily(
    collection: str,
    generate: Callable[[], List[Dict[str, Any]]],
    label: str,
    created_message: str,
):
    """Return today's records of a collection, generating and storing them on a miss."""
    try:
        storage = get_storage()
        todays = storage.todays(collection)
        if todays:
            return success_response(todays, f"Today's {label} already generated")

        records = generate()
        storage.add(collection, records)
        current_app.logger.info("Stored %s new %s for %s", len(records), label, today_string())
        return success_response(records, created_message)

    except Exception as e:
        current_app.logger.error(f"Error in {label} API: {e}")
        return error_response(f'Failed to generate {label}', 500, 'Please try again later')


def _update_record(collection: str, id_field: str, noun: str):
    """Apply ``{<id_field>, updates}`` from the request body to one stored record."""
    try:
        payload = _json_payload()
        record_id = payload.get(id_field)
        updates = payload.get('updates')

        if not record_id or not isinstance(updates, dict):
            return error_response(f'Missing {id_field} or updates', 400)

        record = get_storage().update(collection, record_id, updates)
        if record is None:
            return error_response(f'{noun.capitalize()} not found', 404)

        return success_response(record, f'{noun.capitalize()} updated successfully')

    except Exception as e:
        current_app.logger.error(f"Error updating {noun}: {e}")
        return error_response(f'Failed to update {noun}', 500)


# ============================================================================
# VOCABULARY
# ============================================================================

@app.route('/api/vocabulary', methods=['GET'])
def vocabulary():
    """Today's vocabulary words."""
    count = current_app.config['DAILY_VOCABULARY_COUNT']
    return _serve_daily(
        VOCABULARY,
        lambda: generate_vocabulary(count),
        'vocabulary',
        'Vocabulary generated successfully',
    )


@app.route('/api/vocabulary', methods=['POST'])
def update_vocabulary():
    """Mark a word learned/difficult or attach the learner's own example."""
    return _update_record(VOCABULARY, 'wordId', 'word')


@app.route('/api/evaluate-sentence', methods=['POST'])
def evaluate_sentence():
    """Score a learner's example sentence for a vocabulary word."""
    payload = _json_payload()
    word = payload.get('word')
    sentence = payload.get('sentence')

    if not word or not sentence:
        return jsonify({'error': 'Word and sentence are required'}), 400

    try:
        evaluation = get_sentence_evaluator().evaluate_sentence(word, sentence, payload.get('wordMeaning'))
    except Exception as e:
        current_app.logger.error(f"Error evaluating sentence: {e}")
        evaluation = dict(UNAVAILABLE_FALLBACK)
    # Always 200 so the page never blocks on scoring
    return jsonify(evaluation)


# ============================================================================
# IDIOMS
# ============================================================================

@app.route('/api/idioms', methods=['GET'])
def idioms():
    """Today's idioms and phrases."""
    count = current_app.config['DAILY_IDIOM_COUNT']
    return _serve_daily(IDIOMS, lambda: generate_idioms(count), 'idioms', 'Idioms generated successfully')


@app.route('/api/idioms', methods=['POST'])
def update_idiom():
    """Mark an idiom practiced/mastered or store the learner's sentence."""
    return _update_record(IDIOMS, 'idiomId', 'idiom')


@app.route('/api/evaluate-idiom', methods=['POST'])
def evaluate_idiom():
    """Score a sentence written with one of today's idioms."""
    try:
        payload = _json_payload()
        idiom_id = payload.get('idiomId')
        user_sentence = (payload.get('userSentence') or '').strip()

        if not idiom_id or not user_sentence:
            return error_response('Missing idiomId or userSentence', 400)

        idiom = get_storage().find(IDIOMS, idiom_id)
        if idiom is None:
            return error_response('Idiom not found', 404)

        evaluation = get_sentence_evaluator().evaluate_idiom(idiom, user_sentence)
        return jsonify({
            'success': True,
            'evaluation': evaluation,
            'message': 'Idiom usage evaluated successfully',
        })

    except Exception as e:
        current_app.logger.error(f"Error evaluating idiom: {e}")
        return error_response('Failed to evaluate idiom', 500, 'Please try again later')


# ============================================================================
# CURRENT AFFAIRS & GK
# ============================================================================

@app.route('/api/news', methods=['GET'])
def news():
    """Today's current affairs digest."""
    count = current_app.config['DAILY_NEWS_COUNT']
    return _serve_daily(
        NEWS,
        lambda: generate_news(count),
        'current affairs',
        'Current affairs generated successfully',
    )


@app.route('/api/news', methods=['POST'])
def update_news():
    """Mark a news item read or bookmarked."""
    return _update_record(NEWS, 'newsId', 'news item')


@app.route('/api/daily-gk', methods=['GET'])
def daily_gk():
    """Today's general knowledge facts."""
    count = current_app.config['DAILY_GK_FACT_COUNT']
    minimum = current_app.config['MIN_GK_FACT_COUNT']
    return _serve_daily(
        GK_FACTS,
        lambda: generate_gk_facts(count, minimum),
        'daily GK facts',
        'Daily GK facts generated successfully',
    )


@app.route('/api/daily-gk', methods=['POST'])
def update_gk_fact():
    """Mark a GK fact learned."""
    return _update_record(GK_FACTS, 'factId', 'fact')


# ============================================================================
# QUIZ
# ============================================================================

@app.route('/api/quiz', methods=['GET'])
def quiz():
    """Today's GK multiple choice questions."""
    count = current_app.config['DAILY_QUIZ_COUNT']
    return _serve_daily(
        GK_QUESTIONS,
        lambda: generate_gk_questions(count),
        'GK questions',
        'GK questions generated successfully',
    )


@app.route('/api/quiz', methods=['POST'])
def submit_quiz_answer():
    """Record an answer and report whether it was correct."""
    try:
        payload = _json_payload()
        question_id = payload.get('questionId')
        user_answer = payload.get('userAnswer')

        if not question_id or not user_answer:
            return error_response('Missing questionId or userAnswer', 400)

        storage = get_storage()
        question = storage.find(GK_QUESTIONS, question_id)
        if question is None:
            return error_response('Question not found', 404)

        is_correct = answers_match(str(user_answer), question.get('correct', ''), question.get('options'))
        storage.update(GK_QUESTIONS, question_id, {
            'userAnswer': user_answer,
            'answeredCorrectly': is_correct,
        })

        return success_response(
            {
                'correct': is_correct,
                'correctAnswer': question.get('correct'),
                'explanation': question.get('explanation'),
            },
            'Correct answer!' if is_correct else 'Incorrect answer',
        )

    except Exception as e:
        current_app.logger.error(f"Error submitting answer: {e}")
        return error_response('Failed to submit answer', 500)


# ============================================================================
# PRACTICE
# ============================================================================

@app.route('/api/practice', methods=['POST'])
def practice():
    """Evaluate a practice sentence and keep the session."""
    try:
        payload = _json_payload()
        user_sentence = payload.get('userSentence')
        target_word = payload.get('targetWord')
        practice_type = payload.get('type')

        if not user_sentence or not target_word or not practice_type:
            return error_response('Missing required fields: userSentence, targetWord, type', 400)
        if practice_type not in PRACTICE_TYPES:
            return error_response(f"Invalid type: must be one of {', '.join(PRACTICE_TYPES)}", 400)

        evaluation = get_sentence_evaluator().evaluate_practice(user_sentence, target_word)
        session_record = {
            'id': generate_id(),
            'type': practice_type,
            'targetWord': target_word,
            'userSentence': user_sentence,
            'evaluation': evaluation,
            'score': evaluation.get('score') or 5,
            'date': now_iso(),
        }
        get_storage().add(PRACTICE_SESSIONS, [session_record])

        return success_response(
            {'evaluation': evaluation, 'sessionId': session_record['id']},
            'Practice evaluated successfully',
        )

    except Exception as e:
        current_app.logger.error(f"Error in practice evaluation API: {e}")
        return error_response('Failed to evaluate practice', 500, 'Please try again later')


@app.route('/api/practice', methods=['GET'])
def practice_sessions():
    """Today's practice sessions and the running average score."""
    try:
        sessions = get_storage().all(PRACTICE_SESSIONS)
        today = today_string()
        today_sessions = [s for s in sessions if str(s.get('date', '')).startswith(today)]
        average = sum(float(s.get('score') or 0) for s in sessions) / len(sessions) if sessions else 0

        return success_response(
            {
                'todaySessions': today_sessions,
                'totalSessions': len(sessions),
                'averageScore': average,
            },
            'Practice sessions retrieved successfully',
        )

    except Exception as e:
        current_app.logger.error(f"Error retrieving practice sessions: {e}")
        return error_response('Failed to retrieve practice sessions', 500)


# ============================================================================
# PROGRESS
# ============================================================================

@app.route('/api/progress', methods=['GET'])
def progress():
    """Today's task completion and overall stats."""
    try:
        tracker = get_progress_tracker()
        return success_response(
            {'todayProgress': tracker.get_today_progress(), 'userStats': tracker.get_user_stats()},
            'Progress retrieved successfully',
        )

    except Exception as e:
        current_app.logger.error(f"Error retrieving progress: {e}")
        return error_response('Failed to retrieve progress', 500, 'Please try again later')


@app.route('/api/progress', methods=['POST'])
def update_progress():
    """Mark one of today's tasks complete (or not, with ``completed: false``)."""
    payload = _json_payload()
    task = payload.get('task')
    if not task:
        return error_response('Missing task', 400)
    if task not in TASKS:
        return error_response(f"Unknown task: must be one of {', '.join(TASKS)}", 400)

    completed = payload.get('completed', True)
    if not isinstance(completed, bool):
        return error_response('completed must be a boolean', 400)

    words_learned = payload.get('wordsLearned')
    score = payload.get('score')
    try:
        words_learned = int(words_learned) if words_learned is not None else None
        score = float(score) if score is not None else None
    except (TypeError, ValueError):
        return error_response('wordsLearned and score must be numbers', 400)

    try:
        result = get_progress_tracker().update_task_completion(
            task,
            completed=completed,
            words_learned=words_learned,
            score=score,
        )
    except Exception as e:
        current_app.logger.error(f"Error updating progress: {e}")
        return error_response('Failed to update progress', 500, 'Please try again later')

    message = 'All tasks completed for today!' if result['allCompleted'] else 'Progress updated successfully'
    return success_response(result, message)


@app.route('/api/progress', methods=['DELETE'])
def reset_progress():
    try:
        get_progress_tracker().reset_progress()
    except Exception as e:
        current_app.logger.error(f"Error resetting progress: {e}")
        return error_response('Failed to reset progress', 500, 'Please try again later')
    return success_response(None, 'Progress reset')


@app.route('/api/progress/history', methods=['GET'])
def progress_history():
    days = request.args.get('days', 30, type=int)
    days = max(1, min(days, 365))
    try:
        history = get_progress_tracker().get_progress_history(days)
    except Exception as e:
        current_app.logger.error(f"Error retrieving progress history: {e}")
        return error_response('Failed to retrieve progress history', 500, 'Please try again later')
    return success_response(history, 'Progress history retrieved')


@app.route('/api/progress/export', methods=['GET'])
def export_progress():
    try:
        exported = get_progress_tracker().export_progress()
    except Exception as e:
        current_app.logger.error(f"Error exporting progress: {e}")
        return error_response('Failed to export progress', 500, 'Please try again later')
    return success_response(exported, 'Progress exported')


@app.route('/health')
def health():
    try:
        backend = get_storage().name
    except Exception as e:
        current_app.logger.error(f"Error resolving storage backend: {e}")
        return error_response('Failed to resolve storage backend', 500)
    return jsonify({
        'status': 'ok',
        'storage': backend,
        'gemini_configured': get_gemini_client().is_configured,
    })


# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.errorhandler(404)
def not_found(error):
    """404 error handler."""
    return error_response('Not found', 404)


@app.errorhandler(405)
def method_not_allowed(error):
    return error_response('Method not allowed', 405)


@app.errorhandler(500)
def internal_error(error):
    """500 error handler."""
    db.session.rollback()
    return error_response('Internal server error', 500, 'Please try again later')


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=int(os.getenv('PORT', 3000)), debug=app.config['DEBUG'])
