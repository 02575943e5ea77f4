"""
Onboarding questionnaire scoring.

Parents rate each behaviour Always / Often / Sometimes / Never. Higher
totals mean more ADHD-typical behaviour. Scores are kept in the session
until signup copies them onto the new profile.
"""
from .models import Quiz, QuizQuestion

OPTION_LABELS = ['Always', 'Often', 'Sometimes', 'Never']
OPTION_WEIGHTS = [3, 2, 1, 0]
MAX_WEIGHT = max(OPTION_WEIGHTS)

SUBSCORE_CATEGORIES = ('inattention', 'hyperactivity', 'impulsivity')

PENDING_QUIZ_SESSION_KEY = 'pending_signup_quiz'


def get_initial_quiz():
    quiz = Quiz.objects.filter(type=Quiz.QuizType.INITIAL).order_by('id').first()
    if quiz is None:
        return []
    return list(QuizQuestion.objects.filter(quiz=quiz).order_by('order', 'id'))


def weight_for(option_index):
    if isinstance(option_index, int) and 0 <= option_index < len(OPTION_WEIGHTS):
        return OPTION_WEIGHTS[option_index]
    return 0


def subscore_key(category):
    """Map a free-text question category onto one of the three profile subscores."""
    normalized = (category or '').strip().lower()
    for key in SUBSCORE_CATEGORIES:
        if normalized.startswith(key[:8]):
            return key
    return None


def score_answers(questions, answers):
    """
    answers: {question_id: option_index}. Keys may arrive as strings from JSON.

    Returns total score, the maximum possible, per-category totals and the
    three subscores the profile stores.
    """
    normalized = {}
    for key, value in (answers or {}).items():
        try:
            normalized[int(key)] = int(value)
        except (TypeError, ValueError):
            continue

    total = 0
    category_scores = {}
    subscores = {key: 0 for key in SUBSCORE_CATEGORIES}
    for question in questions:
        if question.id not in normalized:
            continue
        weight = weight_for(normalized[question.id])
        total += weight
        if question.category:
            category_scores[question.category] = category_scores.get(question.category, 0) + weight
        key = subscore_key(question.category)
        if key:
            subscores[key] += weight

    return {
        'score': total,
        'max_score': len(questions) * MAX_WEIGHT,
        'category_scores': category_scores,
        'inattention_score': subscores['inattention'],
        'hyperactivity_score': subscores['hyperactivity'],
        'impulsivity_score': subscores['impulsivity'],
    }


def apply_quiz_result(profile, result):
    """Copy a scored quiz onto a profile (no save)."""
    profile.initial_quiz_score = result.get('score')
    profile.inattention_score = result.get('inattention_score')
    profile.hyperactivity_score = result.get('hyperactivity_score')
    profile.impulsivity_score = result.get('impulsivity_score')
    profile.category_scores = result.get('category_scores') or {}
    return profile
