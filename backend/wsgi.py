from agripos import create_app

app = create_app()
