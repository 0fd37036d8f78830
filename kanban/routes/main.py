"""
Health check routes.
"""
from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

main_bp = Blueprint('main', __name__)


@main_bp.route('/health')
def health():
    """Liveness probe."""
    return jsonify({
        'status': 'healthy',
        'service': 'kanban'
    }), 200


@main_bp.route('/health/db')
def health_db():
    """Readiness probe: the storage engine answers a trivial query."""
    db = current_app.extensions['kanban'].db
    try:
        with db.session() as session:
            session.execute(text('SELECT 1'))
    except Exception as e:
        current_app.logger.error(f"Database health check failed: {e}", exc_info=True)
        return jsonify({'status': 'unhealthy', 'service': 'kanban'}), 503
    return jsonify({'status': 'healthy', 'service': 'kanban', 'database': True}), 200
