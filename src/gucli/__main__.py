from gucli.cli import app

app()
