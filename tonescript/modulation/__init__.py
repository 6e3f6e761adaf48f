"""
Modulation expressions: parse them, evaluate them per note and apply the
results to copies of note events.
"""
