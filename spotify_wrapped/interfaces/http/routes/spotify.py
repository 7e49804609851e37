import logging
from typing import Tuple

from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from spotify_wrapped.auth.oauth import current_access_token
from spotify_wrapped.domain.wrapped import WrappedService, validate_limit
from spotify_wrapped.models.dto import TimeRange

logger = logging.getLogger(__name__)

spotify_bp = Blueprint('spotify_bp', __name__, url_prefix='/api/spotify')


def _query_params() -> Tuple[int, TimeRange]:
    settings = current_app.extensions['spotify_settings']
    limit = validate_limit(
        request.args.get('limit'),
        default=settings.default_limit,
        maximum=settings.max_limit,
    )
    time_range = TimeRange.from_string(request.args.get('timeRange'))
    return limit, time_range


def _wrapped_service() -> WrappedService:
    settings = current_app.extensions['spotify_settings']
    client = current_app.extensions['spotify_client_factory'](current_access_token())
    return WrappedService(client, max_limit=settings.max_limit)


@spotify_bp.route('/top/tracks', methods=['GET'])
@login_required
def get_top_tracks():
    limit, time_range = _query_params()
    logger.info("GET /api/spotify/top/tracks - limit: %s, timeRange: %s", limit, time_range.value)
    envelope = _wrapped_service().top_tracks(limit, time_range)
    return jsonify(envelope.model_dump(mode='json'))


@spotify_bp.route('/top/artists', methods=['GET'])
@login_required
def get_top_artists():
    limit, time_range = _query_params()
    logger.info("GET /api/spotify/top/artists - limit: %s, timeRange: %s", limit, time_range.value)
    envelope = _wrapped_service().top_artists(limit, time_range)
    return jsonify(envelope.model_dump(mode='json'))


@spotify_bp.route('/top/albums', methods=['GET'])
@login_required
def get_top_albums():
    limit, time_range = _query_params()
    logger.info("GET /api/spotify/top/albums - limit: %s, timeRange: %s", limit, time_range.value)
    envelope = _wrapped_service().top_albums(limit, time_range)
    return jsonify(envelope.model_dump(mode='json'))


@spotify_bp.route('/top/genres', methods=['GET'])
@login_required
def get_top_genres():
    limit, time_range = _query_params()
    logger.info("GET /api/spotify/top/genres - limit: %s, timeRange: %s", limit, time_range.value)
    envelope = _wrapped_service().top_genres(limit, time_range)
    return jsonify(envelope.model_dump(mode='json'))


@spotify_bp.route('/wrapped', methods=['GET'])
@login_required
def get_wrapped():
    limit, time_range = _query_params()
    logger.info("GET /api/spotify/wrapped - limit: %s, timeRange: %s", limit, time_range.value)
    wrapped = _wrapped_service().wrapped(limit, time_range)
    return jsonify(wrapped.model_dump(mode='json', by_alias=True))
