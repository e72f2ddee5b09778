"""Account and coin rewards backend."""
