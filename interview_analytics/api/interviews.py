# interview_analytics/api/interviews.py
from flask import Blueprint, jsonify, request

from ..services import interviews as ingest
from ..services import store
from ..services.errors import InvalidInput
from ..services.serializers import (
    question_from_payload, question_answer_to_dict, interview_to_dict, recompute_result_to_dict,
)

bp = Blueprint("interviews", __name__)


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInput("request body must be a JSON object")
    return data


@bp.route("/api/interviews", methods=["POST"])
def create_interview():
    data = _json_body()
    questions = data.get('questions')
    if isinstance(questions, list):
        questions = [question_from_payload(q) for q in questions]
    interview, result = ingest.save_interview(
        questions,
        transcript=data.get('transcript'),
        analysis=data.get('analysis'),
    )
    return jsonify({
        "interview": interview_to_dict(interview),
        "recompute": recompute_result_to_dict(result),
    }), 201


@bp.get("/api/interviews/<int:interview_id>")
def get_interview(interview_id):
    return jsonify(interview_to_dict(store.get_interview(interview_id)))


@bp.route("/api/interviews/<int:interview_id>", methods=["DELETE"])
def delete_interview(interview_id):
    result = ingest.delete_interview(interview_id)
    return jsonify({"deleted": interview_id, "recompute": recompute_result_to_dict(result)})


@bp.route("/api/interviews/<int:interview_id>/questions", methods=["POST"])
def add_question(interview_id):
    qa, result = ingest.add_question_answer(interview_id, question_from_payload(_json_body()))
    return jsonify({
        "question": question_answer_to_dict(qa),
        "recompute": recompute_result_to_dict(result),
    }), 201


@bp.route("/api/questions/<int:qa_id>", methods=["PATCH"])
def update_question(qa_id):
    qa, result = ingest.update_question_answer(qa_id, question_from_payload(_json_body()))
    return jsonify({
        "question": question_answer_to_dict(qa),
        "recompute": recompute_result_to_dict(result),
    })


@bp.route("/api/questions/<int:qa_id>", methods=["DELETE"])
def delete_question(qa_id):
    result = ingest.delete_question_answer(qa_id)
    return jsonify({"deleted": qa_id, "recompute": recompute_result_to_dict(result)})
