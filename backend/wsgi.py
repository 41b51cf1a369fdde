# backend/wsgi.py
from deliciasoft import create_app

app = create_app()
