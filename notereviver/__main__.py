from notereviver.cli.app import app

app(prog_name="notereviver")
