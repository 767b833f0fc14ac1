"""Turn-based tic-tac-toe match registry served over FastAPI + Redis."""
