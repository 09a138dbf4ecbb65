"""
CLI Subpackage.

Modules:
    - ``__main__``: The argparse definition and dispatcher.
    - ``instrument``: Rewrites one input file into an output file.
    - ``run``: Runs one script under the ledger and prints its report.
"""
