# backend/wsgi.py
from fieldcash import create_app

app = create_app()
