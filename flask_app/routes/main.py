"""
Main application routes for the active streams dashboard.
"""
from flask import Blueprint, render_template, jsonify
from flask_app.services.stream_service import StreamService

main_bp = Blueprint('main', __name__)


@main_bp.route('/')
def dashboard():
    """Display the active streams dashboard."""
    view, _ = StreamService().get_current_streams()
    return render_template('dashboard.html', view=view)


@main_bp.route('/api/streams')
def api_streams():
    """Return the active streams widget as an HTML fragment (polled by the dashboard)."""
    view, _ = StreamService().get_current_streams()
    return render_template('partials/streams.html', view=view)


@main_bp.route('/api/streams.json')
def api_streams_json():
    """Return the normalized streams and per-server errors as JSON."""
    view, result = StreamService().get_current_streams()
    payload = result.to_dict() if result else {'streams': [], 'errors': []}
    payload['state'] = view.state
    payload['message'] = view.message
    return jsonify(payload)
