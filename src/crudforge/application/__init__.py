"""Application layer: generic command/query handlers and the mediator."""
