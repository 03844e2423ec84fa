from safetyclawz.main import main

main()
