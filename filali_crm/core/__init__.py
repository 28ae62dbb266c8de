"""Configuration, logging, persistence, and infrastructure clients."""
