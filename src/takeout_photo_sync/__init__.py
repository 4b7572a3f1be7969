"""Google Takeout 相簿與目的地相片庫的對帳工具。"""

__version__ = "0.3.0"
