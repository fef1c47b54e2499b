"""
One parser module per vendor.  Each exposes:

  parse(content, uploaded_by)      bytes/str -> ParsedPO (blinkit: list)
  parse_rows(rows, uploaded_by)    same, from an already-read grid
  sniff(rows)                      how many of its layout sentinels a grid has
"""
from . import bigbasket, blinkit, citymall, dealshare, flipkart, swiggy, zepto, zomato

__all__ = ["flipkart", "zepto", "citymall", "blinkit", "swiggy", "bigbasket", "zomato", "dealshare"]
