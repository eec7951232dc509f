"""rigbudget：按预算与模型协商装机清单"""
