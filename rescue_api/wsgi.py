"""
WSGI entry point.
"""

import os
from .app import create_app

# WSGI servers expect the application to be named 'app'
app = create_app()

if __name__ == "__main__":
    app.run(debug=False, host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
