"""GE capital allocator CLI: python -m flipalloc --capital 50m [--input signals.json]"""
from dotenv import load_dotenv

load_dotenv()

from flipalloc.main import cli_main  # noqa: E402

if __name__ == "__main__":
    cli_main()
