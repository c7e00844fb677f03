"""initial codescope schema

Revision ID: 3c1f9a2b7d40
Revises:
Create Date: 2026-10-19 09:12:41.208311

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3c1f9a2b7d40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

uuid_type = sa.String(36).with_variant(postgresql.UUID(as_uuid=True), 'postgresql')
json_type = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), 'postgresql')


def upgrade() -> None:
    op.create_table(
        'projects',
        sa.Column('project_id', uuid_type, primary_key=True),
        sa.Column('repo_url', sa.String(2048), nullable=False, unique=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('build_info', json_type, nullable=True),
        sa.Column('parsed_data', json_type, nullable=True),
        sa.Column('commit_hash', sa.String(64), nullable=True),
        sa.Column('last_analyzed_at', sa.TIMESTAMP(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(), nullable=False),
    )

    op.create_table(
        'class_metadata',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('project_id', uuid_type, sa.ForeignKey('projects.project_id', ondelete='CASCADE'), nullable=False),
        sa.Column('fully_qualified_name', sa.String(1024), nullable=False),
        sa.Column('package_name', sa.String(1024), nullable=False),
        sa.Column('class_name', sa.String(255), nullable=False),
        sa.Column('stereotype', sa.String(30), nullable=False),
        sa.Column('source_set', sa.String(10), nullable=False),
        sa.Column('relative_path', sa.String(2048), nullable=False),
        sa.Column('user_code', sa.Boolean(), nullable=False),
        sa.Column('annotations', json_type, nullable=True),
        sa.Column('interfaces', json_type, nullable=True),
    )
    op.create_index('idx_class_project_fqn', 'class_metadata', ['project_id', 'fully_qualified_name'])

    op.create_table(
        'api_endpoints',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('project_id', uuid_type, sa.ForeignKey('projects.project_id', ondelete='CASCADE'), nullable=False),
        sa.Column('protocol', sa.String(20), nullable=False),
        sa.Column('http_method', sa.String(10), nullable=True),
        sa.Column('path_or_operation', sa.String(2048), nullable=False),
        sa.Column('controller_class', sa.String(1024), nullable=False),
        sa.Column('controller_method', sa.String(255), nullable=True),
        sa.Column('spec_artifacts', json_type, nullable=True),
    )
    op.create_index('idx_endpoint_project_protocol', 'api_endpoints', ['project_id', 'protocol'])

    op.create_table(
        'log_statements',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('project_id', uuid_type, sa.ForeignKey('projects.project_id', ondelete='CASCADE'), nullable=False),
        sa.Column('class_name', sa.String(1024), nullable=False),
        sa.Column('file_path', sa.String(2048), nullable=False),
        sa.Column('log_level', sa.String(10), nullable=False),
        sa.Column('line_number', sa.Integer(), nullable=True),
        sa.Column('message_template', sa.Text(), nullable=False),
        sa.Column('variables', json_type, nullable=True),
        sa.Column('pii_risk', sa.Boolean(), nullable=False),
        sa.Column('pci_risk', sa.Boolean(), nullable=False),
    )
    op.create_index('idx_log_project_file', 'log_statements', ['project_id', 'file_path'])

    op.create_table(
        'pii_pci_findings',
        sa.Column('finding_id', uuid_type, primary_key=True),
        sa.Column('project_id', uuid_type, sa.ForeignKey('projects.project_id', ondelete='CASCADE'), nullable=False),
        sa.Column('file_path', sa.String(2048), nullable=False),
        sa.Column('line_number', sa.Integer(), nullable=False),
        sa.Column('snippet', sa.Text(), nullable=False),
        sa.Column('match_type', sa.String(30), nullable=False),
        sa.Column('severity', sa.String(10), nullable=False),
        sa.Column('ignored', sa.Boolean(), nullable=False),
    )
    op.create_index('idx_finding_project_file', 'pii_pci_findings', ['project_id', 'file_path', 'line_number'])

    op.create_table(
        'analysis_jobs',
        sa.Column('job_id', uuid_type, primary_key=True),
        sa.Column('repo_url', sa.String(2048), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('status_message', sa.String(255), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('project_id', uuid_type, sa.ForeignKey('projects.project_id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False),
        sa.Column('started_at', sa.TIMESTAMP(), nullable=True),
        sa.Column('completed_at', sa.TIMESTAMP(), nullable=True),
    )
    op.create_index('idx_analysis_jobs_status_created', 'analysis_jobs', ['status', 'created_at'])


def downgrade() -> None:
    op.drop_index('idx_analysis_jobs_status_created', table_name='analysis_jobs')
    op.drop_table('analysis_jobs')
    op.drop_index('idx_finding_project_file', table_name='pii_pci_findings')
    op.drop_table('pii_pci_findings')
    op.drop_index('idx_log_project_file', table_name='log_statements')
    op.drop_table('log_statements')
    op.drop_index('idx_endpoint_project_protocol', table_name='api_endpoints')
    op.drop_table('api_endpoints')
    op.drop_index('idx_class_project_fqn', table_name='class_metadata')
    op.drop_table('class_metadata')
    op.drop_table('projects')
