# backend/wsgi.py
from repairshop import create_app

app = create_app()
