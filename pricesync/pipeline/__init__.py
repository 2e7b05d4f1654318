"""MTG Price Sync: Pipeline Layer (Scryfall client, price dump, import)"""
