from assetforge.cli import main

main()
