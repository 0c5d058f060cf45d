"""Photo quality data structures."""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

@dataclass
class PhotoQualityVerdict:
    """Usability screen of a captured verification photo."""
    acceptable: bool
    issues: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    width: Optional[int] = None
    height: Optional[int] = None
    estimated_bytes: Optional[int] = None
    
    def to_dict(self) -> Dict:
        return {
            'acceptable': self.acceptable,
            'issues': list(self.issues),
            'suggestions': list(self.suggestions),
            'width': self.width,
            'height': self.height,
            'estimated_bytes': self.estimated_bytes
        }
