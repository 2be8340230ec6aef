from quickforms.cli import cli

cli(prog_name="quickforms")
