"""
Ingestion Module
"""
from .seed_db import DemoDataset, generate_demo_dataset, seed_database

__all__ = [
    "DemoDataset",
    "generate_demo_dataset",
    "seed_database",
]
