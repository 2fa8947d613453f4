"""
Settings routes for managing media servers and display settings.
"""
from flask import Blueprint, current_app, render_template, request, redirect, url_for, flash, jsonify
from active_streams.config_loader import load_config
from active_streams.logging_utils import get_logger
from active_streams.models import DisplayOptions, ServerDescriptor
from flask_app.models import db, ServerConfig, DisplaySettings
from flask_app.services.config_service import ConfigService
from flask_app.services.stream_service import StreamService
from flask_app.utils.validators import validate_server_config

settings_bp = Blueprint('settings', __name__)

logger = get_logger("web.settings")


def _server_form_data() -> dict:
    return {
        'server_type': (request.form.get('type') or '').strip().lower(),
        'name': (request.form.get('name') or '').strip(),
        'host': (request.form.get('host') or '').strip(),
        'port': (request.form.get('port') or '').strip(),
        'token': request.form.get('token') or '',
        'use_ssl': request.form.get('use_ssl') == '1',
        'verify_ssl': request.form.get('verify_ssl') == '1',
    }


def _stored_server():
    """Row named by the form's server_id, or None when missing, non-numeric or unknown."""
    server_id = request.form.get('server_id', type=int)
    if server_id is None:
        return None
    return db.session.get(ServerConfig, server_id)


@settings_bp.route('/')
def index():
    """Settings page with all configuration forms."""
    servers = ServerConfig.query.order_by(ServerConfig.server_order, ServerConfig.id).all()
    settings = DisplaySettings.query.first()

    return render_template('settings.html',
                          servers=servers,
                          settings=settings)


@settings_bp.route('/server/add', methods=['POST'])
def add_server():
    """Add or update server configuration."""
    try:
        data = _server_form_data()

        # Check if updating existing or creating new
        server = None
        if request.form.get('server_id'):
            server = _stored_server()
            if server is None:
                flash('Server not found.', 'error')
                return redirect(url_for('settings.index'))
            # An edit form may leave the token blank to keep the stored one
            if not data['token'].strip():
                data['token'] = server.token

        # Validate inputs
        errors = validate_server_config(data)
        if errors:
            for error in errors:
                flash(error, 'error')
            return redirect(url_for('settings.index'))

        data['port'] = int(data['port'])

        if server is not None:
            server.server_type = data['server_type']
            server.name = data['name']
            server.host = data['host']
            server.port = data['port']
            server.token = data['token']
            server.use_ssl = data['use_ssl']
            server.verify_ssl = data['verify_ssl']
        else:
            server = ServerConfig(server_order=ConfigService.next_server_order(), **data)
            db.session.add(server)

        db.session.commit()
        flash(f'Server "{data["name"]}" saved successfully!', 'success')

    except Exception as e:
        db.session.rollback()
        logger.exception("Error saving server")
        flash(f'Error saving server: {str(e)}', 'error')

    return redirect(url_for('settings.index'))


@settings_bp.route('/server/<int:server_id>/delete', methods=['POST'])
def delete_server(server_id):
    """Delete server configuration."""
    server = db.get_or_404(ServerConfig, server_id)
    name = server.name
    db.session.delete(server)
    db.session.commit()
    flash(f'Server "{name}" deleted.', 'success')
    return redirect(url_for('settings.index'))


@settings_bp.route('/server/test', methods=['POST'])
def test_server():
    """Test a server connection with the submitted form values (JSON endpoint)."""
    data = _server_form_data()

    # An edit form may leave the token blank to keep the stored one
    if not data['token'].strip():
        stored = _stored_server()
        if stored:
            data['token'] = stored.token

    errors = validate_server_config(data)
    if errors:
        return jsonify({'success': False, 'error': ' '.join(errors)}), 400

    descriptor = ServerDescriptor(
        type=data['server_type'],
        name=data['name'],
        host=data['host'],
        port=int(data['port']),
        token=data['token'],
        use_ssl=data['use_ssl'],
        verify_ssl=data['verify_ssl'],
    )
    check = StreamService().check_connection(descriptor)
    return jsonify(check.to_dict())


@settings_bp.route('/display', methods=['POST'])
def update_display_settings():
    """Update display settings."""
    try:
        ConfigService.update_display_options(DisplayOptions(
            show_episode_numbers=request.form.get('show_episode_numbers') == '1'
        ))
        flash('Display settings updated!', 'success')
    except Exception as e:
        db.session.rollback()
        flash(f'Error updating settings: {str(e)}', 'error')

    return redirect(url_for('settings.index'))


@settings_bp.route('/import-from-ini', methods=['POST'])
def import_from_ini():
    """Import servers and settings from an existing config.ini file."""
    try:
        servers, options = load_config(current_app.config['CONFIG_INI_PATH'])

        for order, descriptor in enumerate(servers):
            ConfigService.create_or_update_server(descriptor, order=order)

        ConfigService.update_display_options(options)

        flash(f'Successfully imported {len(servers)} server(s) from config.ini!', 'success')

    except Exception as e:
        db.session.rollback()
        flash(f'Error importing config.ini: {str(e)}', 'error')

    return redirect(url_for('settings.index'))
