from cxxbind.cli import main

main()
