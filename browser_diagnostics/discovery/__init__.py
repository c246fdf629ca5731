from browser_diagnostics.discovery.service import ElementDiscovery
from browser_diagnostics.discovery.utils import calculate_text_similarity, levenshtein_distance
from browser_diagnostics.discovery.views import AlternativeElement, SearchCriteria

__all__ = ['ElementDiscovery', 'AlternativeElement', 'SearchCriteria', 'calculate_text_similarity', 'levenshtein_distance']
