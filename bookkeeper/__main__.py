from bookkeeper.main import main

main()
