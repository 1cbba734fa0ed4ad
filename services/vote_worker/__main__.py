"""Allow ``python -m vote_worker``."""

from .worker import main

main()
