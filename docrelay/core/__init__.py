"""
Core relay logic.

This module is framework-agnostic - it doesn't import FastAPI or any
infrastructure concerns. The store is reached through small protocols,
so range slicing and progress accounting can be tested in isolation.
"""
