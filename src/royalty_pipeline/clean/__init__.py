"""Cleaning and validation utilities for the pipeline.

Provides Pydantic validation of transaction and withdrawal documents and the
partition-wise preparation of stored transactions for grouping.
"""
