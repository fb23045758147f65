from mdopen.cli import main

main()
