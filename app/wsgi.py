from app.msa import create_app

app = create_app()
