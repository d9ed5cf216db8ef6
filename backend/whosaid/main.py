from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from whosaid import db

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Who Said That game server!'})


@main.route('/api/health')
def health():
    checks = {
        'status': 'healthy',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'services': {'database': 'unknown'},
    }
    try:
        db.session.execute(text('SELECT 1'))
        checks['services']['database'] = 'connected'
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.warning(f"[health] database check failed: {exc}")
        checks['services']['database'] = 'error'
        checks['status'] = 'degraded'
    return jsonify(checks), 200 if checks['status'] == 'healthy' else 503
