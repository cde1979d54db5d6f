# core/management/commands/init_system_config.py

from django.core.management.base import BaseCommand
from django.db import transaction

from core.models import SystemConfig


EMPTY_WINDOW = {'start': None, 'end': None}

DEFAULT_CONFIGS = [
    {
        'key': 'academic.currentYear',
        'value': '2025-26',
        'type': 'string',
        'description': 'Current academic year',
        'category': 'academic',
    },
    {
        'key': 'sem7.choiceWindow',
        'value': EMPTY_WINDOW,
        'type': 'object',
        'description': 'Window for students to choose Internship or Coursework in Sem 7',
        'category': 'sem7',
    },
    {
        'key': 'sem7.sixMonthSubmissionWindow',
        'value': EMPTY_WINDOW,
        'type': 'object',
        'description': 'Window to submit 6-month internship company details',
        'category': 'sem7',
    },
    {
        'key': 'sem7.internship2.evidenceWindow',
        'value': EMPTY_WINDOW,
        'type': 'object',
        'description': 'Window to submit 2-month internship evidence (summer)',
        'category': 'sem7',
    },
    {
        'key': 'sem7.internship1.registrationWindow',
        'value': EMPTY_WINDOW,
        'type': 'object',
        'description': 'Window for Internship 1 (solo project) registration and preferences',
        'category': 'sem7',
    },
    {
        'key': 'sem8.choiceWindow',
        'value': EMPTY_WINDOW,
        'type': 'object',
        'description': 'Window for Type 2 students to choose Internship or Major Project 2 in Sem 8',
        'category': 'sem8',
    },
]


class Command(BaseCommand):
    help = 'Seed default system configuration (academic year, submission windows)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--overwrite',
            action='store_true',
            help='Reset existing keys to their default values',
        )

    def handle(self, *args, **options):
        overwrite = options['overwrite']
        created = 0

        with transaction.atomic():
            for config in DEFAULT_CONFIGS:
                exists = SystemConfig.objects.filter(config_key=config['key']).exists()
                if exists and not overwrite:
                    self.stdout.write(f"Keeping existing {config['key']}")
                    continue

                SystemConfig.set_config_value(
                    config['key'],
                    config['value'],
                    config['type'],
                    description=config['description'],
                    category=config['category'],
                )
                created += 1

        self.stdout.write(self.style.SUCCESS(f'Initialized {created} configuration entries'))
