from express_app_init.cli import main

main()
