"""HTTP API for tariff maintenance, simulation and monthly statements."""
