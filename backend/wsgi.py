# backend/wsgi.py
from clubhouse import create_app

app = create_app()
