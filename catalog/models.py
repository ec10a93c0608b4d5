from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class TimestampedModel(models.Model):
    """Abstract base with created/updated timestamps for all domain tables."""
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class OrganizationType(models.TextChoices):
    UNIVERSITY = "university", "University"
    GOVERNMENT = "government", "Government"
    NONPROFIT = "nonprofit", "Nonprofit"
    ORGANIZATION = "organization", "Organization"


class VerificationStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    VERIFIED = "verified", "Verified"


class Organization(TimestampedModel):
    """Program provider, deduplicated by a slug derived from its name."""
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True)
    type = models.CharField(max_length=32, choices=OrganizationType.choices, default=OrganizationType.ORGANIZATION)
    website = models.URLField(max_length=500, null=True, blank=True)
    city = models.CharField(max_length=100, blank=True)
    state_province = models.CharField(max_length=100, blank=True)
    country = models.CharField(max_length=3, default="USA")
    verification_status = models.CharField(
        max_length=20, choices=VerificationStatus.choices, default=VerificationStatus.PENDING
    )
    trust_score = models.DecimalField(
        max_digits=3,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00")), MaxValueValidator(Decimal("5.00"))],
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=models.Q(trust_score__gte=0) & models.Q(trust_score__lte=5),
                name="organization_valid_trust_score",
            ),
        ]
        indexes = [models.Index(fields=["type"], name="organization_type_idx")]
        ordering = ["name"]

    def __str__(self) -> str:
        return f"{self.name} ({self.slug})"


class ProgramType(models.TextChoices):
    SUMMER_PROGRAM = "summer_program", "Summer Program"
    COMPETITION = "competition", "Competition"
    SCHOLARSHIP = "scholarship", "Scholarship"
    AWARD = "award", "Award"
    WORKSHOP = "workshop", "Workshop"
    CONFERENCE = "conference", "Conference"
    CAMP = "camp", "Camp"
    PROGRAM = "program", "Program"


class TargetAudience(models.TextChoices):
    MIDDLE_SCHOOL = "middle_school", "Middle School"
    HIGH_SCHOOL = "high_school", "High School"


class SelectivityTier(models.TextChoices):
    ELITE = "elite", "Elite"
    HIGHLY_SELECTIVE = "highly_selective", "Highly Selective"
    SELECTIVE = "selective", "Selective"
    OPEN = "open", "Open"


class ProgramStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class Program(TimestampedModel):
    """Canonical program owned by an organization; identity is (organization, slug)."""
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="programs")
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255)
    description = models.TextField(blank=True)
    short_description = models.CharField(max_length=500, blank=True)
    program_type = models.CharField(max_length=32, choices=ProgramType.choices, default=ProgramType.PROGRAM)
    target_audience = models.CharField(
        max_length=32, choices=TargetAudience.choices, default=TargetAudience.HIGH_SCHOOL
    )
    duration_value = models.PositiveIntegerField(null=True, blank=True)
    selectivity_tier = models.CharField(
        max_length=20, choices=SelectivityTier.choices, default=SelectivityTier.OPEN
    )
    estimated_acceptance_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )
    status = models.CharField(max_length=20, choices=ProgramStatus.choices, default=ProgramStatus.ACTIVE)
    data_source = models.CharField(max_length=100, blank=True)

    class Meta:
        unique_together = (("organization", "slug"),)
        constraints = [
            models.CheckConstraint(
                condition=models.Q(estimated_acceptance_rate__isnull=True)
                | (models.Q(estimated_acceptance_rate__gte=0) & models.Q(estimated_acceptance_rate__lte=100)),
                name="program_valid_acceptance_rate",
            ),
        ]
        indexes = [
            models.Index(fields=["program_type"], name="program_type_idx"),
            models.Index(fields=["status"], name="program_status_idx"),
            models.Index(fields=["selectivity_tier"], name="program_selectivity_idx"),
        ]
        ordering = ["name"]

    def __str__(self) -> str:
        return f"{self.name} @ {self.organization.slug}"

    def attribute_values(self) -> dict:
        """Return {attribute_name: value} for every stored attribute."""
        rows = self.attributes.select_related("attribute_definition")
        return {row.attribute_definition.name: row.value for row in rows}


class AttributeDataType(models.TextChoices):
    STRING = "string", "String"
    INTEGER = "integer", "Integer"
    DECIMAL = "decimal", "Decimal"
    BOOLEAN = "boolean", "Boolean"
    DATE = "date", "Date"
    JSON = "json", "JSON"
    ARRAY = "array", "Array"


class AttributeAppliesTo(models.TextChoices):
    PROGRAMS = "programs", "Programs"
    ORGANIZATIONS = "organizations", "Organizations"


class AttributeDefinition(TimestampedModel):
    """Registry entry describing one typed attribute that may be stored for an entity."""
    name = models.CharField(max_length=100, unique=True)
    display_name = models.CharField(max_length=150, blank=True)
    description = models.TextField(blank=True)
    data_type = models.CharField(max_length=20, choices=AttributeDataType.choices)
    category = models.CharField(max_length=50, blank=True)
    applies_to = models.CharField(
        max_length=20, choices=AttributeAppliesTo.choices, default=AttributeAppliesTo.PROGRAMS
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        indexes = [models.Index(fields=["category"], name="attrdef_category_idx")]
        ordering = ["category", "name"]

    def __str__(self) -> str:
        return f"{self.name}:{self.data_type}"


# Typed value column for each AttributeDataType
VALUE_COLUMNS = {
    "string": "value_string",
    "integer": "value_integer",
    "decimal": "value_decimal",
    "boolean": "value_boolean",
    "date": "value_date",
    "json": "value_json",
    "array": "value_array",
}


class ProgramAttribute(TimestampedModel):
    """One typed value per (program, attribute definition)."""
    program = models.ForeignKey(Program, on_delete=models.CASCADE, related_name="attributes")
    attribute_definition = models.ForeignKey(
        AttributeDefinition, on_delete=models.CASCADE, related_name="program_values"
    )
    value_string = models.TextField(null=True, blank=True)
    value_integer = models.IntegerField(null=True, blank=True)
    value_decimal = models.DecimalField(max_digits=14, decimal_places=4, null=True, blank=True)
    value_boolean = models.BooleanField(null=True, blank=True)
    value_date = models.DateField(null=True, blank=True)
    value_json = models.JSONField(null=True, blank=True)
    value_array = models.JSONField(null=True, blank=True)

    class Meta:
        unique_together = (("program", "attribute_definition"),)
        ordering = ["program", "attribute_definition"]

    @property
    def value(self):
        column = VALUE_COLUMNS.get(self.attribute_definition.data_type)
        return getattr(self, column) if column else None

    def __str__(self) -> str:
        return f"{self.program_id}:{self.attribute_definition.name}={self.value!r}"


class CategoryType(models.TextChoices):
    SUBJECT = "subject", "Subject"
    DEMOGRAPHIC = "demographic", "Demographic"


class Category(TimestampedModel):
    """Taxonomy node (subject or demographic) with optional parent."""
    name = models.CharField(max_length=100)
    slug = models.SlugField(max_length=100)
    description = models.TextField(blank=True)
    category_type = models.CharField(max_length=30, choices=CategoryType.choices)
    parent = models.ForeignKey("self", null=True, blank=True, on_delete=models.CASCADE, related_name="children")
    level = models.PositiveIntegerField(default=0)
    path = models.CharField(max_length=255, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        unique_together = (("slug", "category_type"),)
        indexes = [models.Index(fields=["category_type"], name="category_type_idx")]
        ordering = ["category_type", "path"]
        verbose_name_plural = "categories"

    def __str__(self) -> str:
        return f"{self.category_type}:{self.slug}"


class ProgramCategory(TimestampedModel):
    """Link between a program and a category; at most one primary link per program."""
    program = models.ForeignKey(Program, on_delete=models.CASCADE, related_name="category_links")
    category = models.ForeignKey(Category, on_delete=models.CASCADE, related_name="program_links")
    is_primary = models.BooleanField(default=False)
    relevance_score = models.DecimalField(max_digits=3, decimal_places=2, default=Decimal("1.00"))

    class Meta:
        unique_together = (("program", "category"),)
        constraints = [
            models.UniqueConstraint(
                fields=["program"],
                condition=models.Q(is_primary=True),
                name="program_single_primary_category",
            ),
        ]
        ordering = ["program", "-is_primary"]

    def __str__(self) -> str:
        flag = "*" if self.is_primary else ""
        return f"{self.program_id}->{self.category.slug}{flag}"


class NormalizationRule(TimestampedModel):
    """Maps messy source values to normalized values (manual alias table)."""
    TYPE_CHOICES = (
        ("ORGANIZATION_NAME", "Organization Name"),
        ("PROGRAM_TYPE", "Program Type"),
    )
    type = models.CharField(max_length=32, choices=TYPE_CHOICES)
    source_value = models.CharField(max_length=255, db_index=True)
    normalized_value = models.CharField(max_length=255)
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        unique_together = (("type", "source_value"),)
        ordering = ["type", "source_value"]

    def __str__(self) -> str:
        return f"{self.type}:{self.source_value}→{self.normalized_value}"


class MigrationRun(TimestampedModel):
    """Audit trail for one import run and its final counters. Written once."""
    action = models.CharField(max_length=64)
    input_path = models.CharField(max_length=500, blank=True)
    report_path = models.CharField(max_length=500, blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    finished_at = models.DateTimeField(null=True, blank=True)
    dry_run = models.BooleanField(default=False)
    stats = models.JSONField(default=dict, blank=True)

    class Meta:
        indexes = [models.Index(fields=["action", "created_at"], name="migrationrun_action_idx")]
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.action}@{self.created_at:%Y-%m-%d %H:%M:%S}"


class MigrationIssue(TimestampedModel):
    """Single report line: what was missing, inferred or failed for a record."""
    SEVERITY_CHOICES = (
        ("info", "Info"),
        ("warning", "Warning"),
        ("error", "Error"),
    )
    run = models.ForeignKey(MigrationRun, on_delete=models.CASCADE, related_name="issues")
    record_identifier = models.CharField(max_length=255)
    field = models.CharField(max_length=100)
    issue = models.TextField()
    severity = models.CharField(max_length=10, choices=SEVERITY_CHOICES)

    class Meta:
        indexes = [
            models.Index(fields=["severity"], name="migrationissue_severity_idx"),
            models.Index(fields=["field"], name="migrationissue_field_idx"),
        ]
        ordering = ["run", "id"]

    def __str__(self) -> str:
        return f"[{self.severity}] {self.record_identifier}.{self.field}: {self.issue}"
