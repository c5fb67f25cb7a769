"""
WSGI entry point for the StripScan CV Service.

Each worker thread keeps its own FrameAnalyzer, so threaded workers are safe:
    gunicorn -w 2 --threads 4 -b 0.0.0.0:5000 wsgi:app
"""

import os

from app import app, logger

application = app

if __name__ == '__main__':
    port = int(os.getenv('PORT', 5000))
    logger.info(f'Starting StripScan CV Service (wsgi) on port {port}')
    app.run(host='0.0.0.0', port=port, debug=os.getenv('FLASK_DEBUG', 'False').lower() == 'true', threaded=True)
