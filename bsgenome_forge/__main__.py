from bsgenome_forge.cli import app

app()
