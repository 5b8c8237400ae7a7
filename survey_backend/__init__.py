"""Survey response storage and scoring backend."""
