# backend/wsgi.py
from estoque import create_app

app = create_app()
