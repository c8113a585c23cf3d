import logging

from flask import Blueprint, g, jsonify, request

from errors import InvalidSetup, StudyPlannerError, TopicRequired
from services.engine import complete_session, generate_plan, submit_assessment
from services.progress import get_home, get_progress
from services.setup import get_profile, get_setup, record_screen, save_setup
from services.store import StudyStore
from utils.decorators import user_required

logger = logging.getLogger(__name__)

bp = Blueprint("bp", __name__, url_prefix="/api")

SESSION_LIST_LIMIT = 20


@bp.app_errorhandler(StudyPlannerError)
def handle_planner_error(error):
    """Render engine failures as a short JSON message the client can retry on"""
    if error.status_code >= 500:
        logger.error("%s: %s", error.code, error.message)
    return jsonify(error.to_dict()), error.status_code


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


# ============================================================================
# PLANNER ROUTES
# ============================================================================


@bp.route("/plan/generate", methods=["POST"])
@user_required
def plan_generate():
    """Replace pending sessions with a freshly ranked plan"""
    result = generate_plan(g.user_id)
    return jsonify(result), 201


@bp.route("/sessions")
@user_required
def sessions_list():
    """The user's sessions, earliest first"""
    sessions = StudyStore().list_sessions_for_user(g.user_id, limit=SESSION_LIST_LIMIT)
    return jsonify({"success": True, "sessions": [s.to_dict() for s in sessions]})


@bp.route("/sessions/<int:session_id>/complete", methods=["POST"])
@user_required
def session_complete(session_id):
    result = complete_session(g.user_id, session_id)
    return jsonify(result)


# ============================================================================
# ASSESSMENT ROUTES
# ============================================================================


@bp.route("/assessments", methods=["POST"])
@user_required
def assessment_create():
    """Log a self-assessment; the topic's state is overwritten with it"""
    data = _json_body()
    topic_id = data.get("topic_id")
    if isinstance(topic_id, bool) or not isinstance(topic_id, int):
        raise TopicRequired()

    result = submit_assessment(
        g.user_id,
        topic_id,
        data.get("score"),
        data.get("confidence_level"),
    )
    return jsonify(result), 201


# ============================================================================
# SETUP & PROFILE ROUTES
# ============================================================================


@bp.route("/setup")
@user_required
def setup_view():
    return jsonify({"success": True, **get_setup(g.user_id)})


@bp.route("/setup", methods=["PUT"])
@user_required
def setup_save():
    """Replace all subjects and topics, and update study settings"""
    data = _json_body()
    result = save_setup(
        g.user_id,
        data.get("subjects", []),
        daily_study_hours=data.get("daily_study_hours", 2),
        deadline_date=data.get("deadline_date"),
    )
    return jsonify({"success": True, **result})


@bp.route("/profile")
@user_required
def profile_view():
    return jsonify({"success": True, "profile": get_profile(g.user_id)})


@bp.route("/profile/screen", methods=["PUT"])
@user_required
def profile_screen():
    screen = _json_body().get("screen")
    if not isinstance(screen, str):
        raise InvalidSetup("screen is required")
    return jsonify({"success": True, "profile": record_screen(g.user_id, screen)})


# ============================================================================
# PROGRESS & HOME ROUTES
# ============================================================================


@bp.route("/progress")
@user_required
def progress_view():
    return jsonify({"success": True, **get_progress(g.user_id)})


@bp.route("/home")
@user_required
def home_view():
    return jsonify({"success": True, **get_home(g.user_id)})
