# backend/wsgi.py
from bevledger import create_app

app = create_app()
