# drainr/wsgi.py
# Entry point for gunicorn (drainr.wsgi:app) and local runs.
import os

from .app import create_app

app = create_app()

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    app.run(
        debug=app.config.get('DEBUG', False),
        host='0.0.0.0',
        port=port
    )
