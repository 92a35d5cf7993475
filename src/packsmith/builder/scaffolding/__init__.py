"""Scaffolding for new addon projects."""
