from duelmarkets.tournament.bracket import TournamentBracket, create_tournament_market

__all__ = ["TournamentBracket", "create_tournament_market"]
