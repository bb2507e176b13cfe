"""
QiDao Snapshot Bribe Library
----------------------------

This package contains modules for:
- fetch_votes: Fetching proposal choices and votes from the Snapshot hub
- tally: Vote totals and chain percentages
- bribes: Threshold gate, bribe pool, allocation and whale clawback
- pipeline: Running the stages in order
- report: Displaying results
"""
