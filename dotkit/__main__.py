"""Allow ``python -m dotkit``."""

from dotkit.main import main

main()
