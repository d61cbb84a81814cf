from codemerge.server import run

run()
