"""WSGI entrypoint for production deployment.

Usage with Gunicorn (a single worker, since Foundry holds one Socket.IO connection):
    gunicorn -w 1 --threads 4 -b 0.0.0.0:5000 wsgi:app

Environment variables:
    CONTENT_HOST=foundry|local  Serve the connected Foundry world or exported pack files
    API_AUTH_ENABLED=true       Enable JWT authentication
    JWT_SECRET_KEY=<secret>     Secret key for JWT signing (required in production)
    API_USERNAME=<username>     Username for auth (default: admin)
    API_PASSWORD=<password>     Password for auth (default: changeme)
"""

from api import create_app

app = create_app()

if __name__ == "__main__":
    app.run()
