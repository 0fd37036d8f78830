"""
Main application entry point.
"""
import logging
import os

from kanban import create_app

logging.basicConfig(
    level=os.environ.get('LOG_LEVEL', 'INFO'),
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
)

app = create_app()


if __name__ == '__main__':
    # For development
    app.run(host='0.0.0.0', port=int(os.environ.get('PORT', 13008)), debug=app.config['DEBUG'])
