"""Core model, codec, and storage modules.

WHY: The core package holds everything that has no opinion about how
results are shown: identifier rendering, the bank/register/address
model, the on-disk bank file contract, and the background job gate.

HOW: codec.py renders identifiers, model.py defines the data structures,
context.py loads and saves bank files, jobs.py guards and runs the single
background job, errors.py holds the exception hierarchy.

RULES:
- No module in core imports from presenter, views, or gui
- Model dataclasses are the contract between storage and formatters
"""
