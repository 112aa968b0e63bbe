"""Domain models, pure logic and ports of the log store."""
