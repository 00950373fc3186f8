# backend/wsgi.py
from vetclinic import create_app

app = create_app()
