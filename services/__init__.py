"""Account workflows and the session core."""
