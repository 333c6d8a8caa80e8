"""Run the cpstate command line tool with `python -m cpstate`."""

from cpstate.tool.cpstate import main

if __name__ == "__main__":
    main()
