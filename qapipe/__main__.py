"""支持 python -m qapipe"""

from qapipe.cli import main

main()
