"""Run the fnops command line tool."""

from fnops.tool.fnops import main

if __name__ == "__main__":
    main()
