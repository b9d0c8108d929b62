"""Allow ``python -m mockinterview``."""

from mockinterview.cli.main import main

main()
