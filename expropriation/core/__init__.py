"""Decision engines: stage workflow, permission resolution and access gate."""
