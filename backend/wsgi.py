# backend/wsgi.py
from bigdrip import create_app

app = create_app()
