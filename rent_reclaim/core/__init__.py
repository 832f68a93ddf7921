"""
Core utilities: exceptions and chain constants shared by every stage.
"""
