"""
RugSentry Analyzer Adapters
Each module exposes METADATA and an async analyze(target, context)
"""
