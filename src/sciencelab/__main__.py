from sciencelab.main import main

main()
