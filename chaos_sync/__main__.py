from chaos_sync.main import main

main()
