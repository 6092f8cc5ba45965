"""Core building blocks: transport, session, edition and ePub handling."""
