from salesbot.api.main import run

run()
