from perch.cli import main

main()
