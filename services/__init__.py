"""Application state containers, wired together once per Flask app."""
import logging

from exceptions import DirectoryUnavailable
from models import SmsModuleStatus

from .api_client import AttendanceApiClient
from .demo import DemoBackend, seed_history
from .directory import Directory
from .ledger import AttendanceLedger
from .notifications import NotificationBus
from .scanner import ScanSimulator
from .scheduler import ManualScheduler, ThreadingScheduler
from .session_store import DEMO_USERS, SessionStore
from .settings import DashboardSettings
from .sms import SmsSender

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'attendtrack'


class Services:
    def __init__(self, scheduler, api, settings, users=None):
        self.scheduler = scheduler
        self.api = api
        self.settings = settings
        self.users = users if users is not None else DEMO_USERS
        self.notifications = None
        self.directory = None
        self.ledger = None
        self.sms = None
        self.scanner = None

    def reload_directory(self) -> bool:
        try:
            count = self.directory.load_all()
        except DirectoryUnavailable as exc:
            logger.error('%s', exc.message)
            self.notifications.error('Directory Unavailable', exc.message)
            return False
        logger.info('Loaded %d students', count)
        return True

    def session_store(self, storage) -> SessionStore:
        return SessionStore(storage, self.users)

    def registration(self, payload=None, prefilled_rfid=None, registered_by='admin'):
        # forms imports services.settings, so the workflow module is loaded on first use
        from .registration import RegistrationWorkflow

        if payload:
            return RegistrationWorkflow.from_dict(payload, self.directory, self.notifications,
                                                  scanner=self.scanner, registered_by=registered_by,
                                                  clock=self.scheduler.now)
        return RegistrationWorkflow(self.directory, self.notifications, scanner=self.scanner,
                                    prefilled_rfid=prefilled_rfid, registered_by=registered_by,
                                    clock=self.scheduler.now)

    def update_settings(self, **changes):
        self.settings.update(**changes)
        if 'scanner_location' in changes:
            self.scanner.set_location(changes['scanner_location'])

    def close(self):
        if self.scanner is not None:
            self.scanner.close()
        self.scheduler.shutdown()


def build_services(config, scheduler=None, api=None) -> Services:
    """Build the containers from a Flask config mapping."""
    if scheduler is None:
        scheduler = ThreadingScheduler() if config.get('START_SCHEDULER', True) else ManualScheduler()
    if api is None:
        if config.get('API_BASE_URL'):
            api = AttendanceApiClient(config['API_BASE_URL'], api_key=config.get('API_KEY') or None,
                                      timeout=config.get('API_TIMEOUT', 10.0))
        else:
            logger.info('No API_BASE_URL configured, using the in-process demo backend')
            api = DemoBackend(clock=scheduler.now)

    services = Services(scheduler, api, DashboardSettings.from_config(config))
    services.notifications = NotificationBus(scheduler, default_duration=config.get('TOAST_DURATION', 5.0))
    services.directory = Directory(api)
    services.ledger = AttendanceLedger(services.directory, scheduler, location=services.settings.scanner_location)
    services.sms = SmsSender(
        services.directory, services.ledger, services.notifications, scheduler,
        delivery_delay=config.get('SMS_DELIVERY_DELAY', 2.0),
        module_status=SmsModuleStatus(network_operator=config.get('SMS_NETWORK_OPERATOR')),
    )
    services.scanner = ScanSimulator(
        services.directory, services.ledger, services.sms, services.notifications, scheduler,
        services.settings,
        api=api if config.get('REPORT_SCANS') else None,
        scan_delay=config.get('SCAN_DELAY', 0.5),
        result_reset_delay=config.get('RESULT_RESET_DELAY', 5.0),
        heartbeat_interval=config.get('HEARTBEAT_INTERVAL', 5.0),
        firmware_version=config.get('SCANNER_FIRMWARE'),
    )

    services.reload_directory()
    if config.get('SEED_DEMO_DATA'):
        added = seed_history(services.ledger, services.directory, scheduler.now().date())
        logger.info('Seeded %d sample attendance records', added)
    services.scanner.start()
    return services
