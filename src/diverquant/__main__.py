from diverquant.cli import main

main()
