from gpumetric.cli import main

main()
