# interview_analytics/api/analytics.py
from flask import Blueprint, jsonify, request

from ..jobs.recompute import recompute_pending, recompute_all
from ..services import store
from ..services.aggregation import aggregate_global
from ..services.errors import InvalidInput
from ..services.serializers import (
    interview_analytics_to_dict, global_analytics_to_dict, recompute_result_to_dict,
)
from ..utils.timestamps import parse_date

bp = Blueprint("analytics", __name__)


def _date_filters():
    try:
        date_from = parse_date(request.args.get('dateFrom'))
        date_to = parse_date(request.args.get('dateTo'))
    except ValueError:
        raise InvalidInput("dateFrom/dateTo must be YYYY-MM-DD")
    if date_from and date_to and date_from > date_to:
        raise InvalidInput("dateFrom cannot be after dateTo")
    return date_from, date_to


@bp.get("/api/analytics/interviews/<int:interview_id>")
def interview_analytics(interview_id):
    interview = store.get_interview(interview_id)
    row = store.get_interview_analytics(interview_id)
    return jsonify(interview_analytics_to_dict(row, interview))


@bp.get("/api/analytics/interviews")
def list_interview_analytics():
    date_from, date_to = _date_filters()
    rows = store.list_interview_analytics(date_from, date_to)
    return jsonify([interview_analytics_to_dict(row, interview) for row, interview in rows])


@bp.get("/api/analytics/global")
def global_analytics():
    date_from, date_to = _date_filters()
    pending = store.get_unclean_interview_ids()
    if date_from or date_to:
        # filtered view: computed on the fly, never persisted
        rows = store.list_interview_analytics(date_from, date_to)
        snapshot = aggregate_global(row for row, _ in rows)
        in_range = {row.interview_id for row, _ in rows}
        return jsonify(global_analytics_to_dict(snapshot, [i for i in pending if i in in_range]))
    return jsonify(global_analytics_to_dict(store.get_global_analytics(), pending))


@bp.route("/api/analytics/recompute", methods=["POST"])
def recompute():
    data = request.get_json(silent=True) or {}
    if data.get('full'):
        result = recompute_all(rescan=bool(data.get('rescan')))
    else:
        result = recompute_pending()
    status = 200 if result.ok else 503
    return jsonify(recompute_result_to_dict(result)), status
