from bgremoval.main import run

run()
