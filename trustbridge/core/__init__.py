"""Chat-facing core: the transfer wizard and the command router"""
