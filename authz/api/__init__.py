"""HTTP facade: blueprints, caller identity, validation and error handlers."""
