from .hierarchy import ContentItemNode, build_hierarchy, calculate_stats, collect_descendant_ids
from .batch_mutations import BatchMutationEngine
from .content_item_service import ContentItemService
from .job_queue_service import JobQueueService
from .job_match_service import JobMatchService
from .config_service import JobFinderConfigService, extract_variables, validate_prompt
from .generator_document_service import GeneratorDocumentService, to_history_items
