"""
Report package: render the metrics block and merge it into ADO work item fields.
"""
