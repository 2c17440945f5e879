"""Vote API service: election listing, vote casting and results."""
