from backman.cli.main import app

app()
