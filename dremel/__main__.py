"""Package entry point for ``python -m dremel``.

WHY: Users run the tool as ``python -m dremel shred records.json`` without
installing a console script.

HOW: Delegates to the CLI's main() function.
"""

from dremel.cli import main

if __name__ == "__main__":
    main()
