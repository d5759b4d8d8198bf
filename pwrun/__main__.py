"""python -m pwrun で CLI を起動する。"""

from .cli import app

app(prog_name="pwrun")
