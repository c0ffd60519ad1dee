from scabbard.cli import main

main()
