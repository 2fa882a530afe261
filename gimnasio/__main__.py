from gimnasio.main import main

main()
