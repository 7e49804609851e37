from flask import Blueprint, jsonify, url_for
from flask_login import current_user

home_bp = Blueprint('home_bp', __name__, url_prefix='/api')


@home_bp.route('/', methods=['GET'])
def home():
    """Authentication status plus where to go next; never requires a session."""
    if current_user.is_authenticated:
        return jsonify({
            'authenticated': True,
            'user': current_user.display_name,
            'message': 'You are logged in! Try: /api/spotify/wrapped',
            'endpoints': {
                'wrapped': url_for('spotify_bp.get_wrapped'),
                'topTracks': url_for('spotify_bp.get_top_tracks'),
                'topArtists': url_for('spotify_bp.get_top_artists'),
                'topAlbums': url_for('spotify_bp.get_top_albums'),
                'topGenres': url_for('spotify_bp.get_top_genres'),
                'logout': url_for('auth.logout'),
            },
        })
    return jsonify({
        'authenticated': False,
        'message': 'Welcome to Spotify Wrapped API! Please log in with Spotify.',
        'loginUrl': url_for('auth.authorize'),
    })
