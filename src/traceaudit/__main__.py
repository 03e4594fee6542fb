from traceaudit.cli import main

main()
