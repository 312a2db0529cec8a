from kra_connect.cli import cli

cli()
